"""Turns an uploaded credential file into credential tasks."""
import logging
from typing import List

from shared.config import settings
from shared.errors import InvalidInput
from storage.models import CredentialTask

logger = logging.getLogger(__name__)

SUPPORTED_INPUT_TYPES = ("email_pass",)


def split_credential_line(line: str):
    """Split ``username:password``; returns None for anything else."""
    parts = line.split(":")
    if len(parts) != 2:
        return None
    username, password = parts[0].strip(), parts[1].strip()
    if not username or not password:
        return None
    return username, password


def parse_credential_file(
    data: bytes,
    input_type: str = None,
    max_lines: int = None,
    max_bytes: int = None
) -> List[CredentialTask]:
    """
    Parse one ``username:password`` credential per line.

    - Blank lines are ignored
    - Lines not in the expected format are skipped
    - Rejects empty, oversized or over-long files with InvalidInput
    """
    input_type = input_type or settings.default_input_type
    max_lines = max_lines or settings.max_batch_size
    max_bytes = max_bytes or settings.max_file_size_bytes

    if input_type not in SUPPORTED_INPUT_TYPES:
        raise InvalidInput(f"Unsupported input type '{input_type}'")

    if len(data) > max_bytes:
        raise InvalidInput(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit")

    text = data.decode("utf-8", errors="replace")
    lines = [line.strip() for line in text.splitlines() if line.strip()]

    if not lines:
        raise InvalidInput("File is empty")

    if len(lines) > max_lines:
        raise InvalidInput(f"File contains more than {max_lines:,} lines")

    tasks = []
    skipped = 0
    for line in lines:
        parsed = split_credential_line(line)
        if parsed is None:
            skipped += 1
            continue
        username, password = parsed
        tasks.append(CredentialTask(raw_line=line, username=username, password=password))

    if skipped:
        logger.info(f"Skipped {skipped} line(s) not in username:password format")

    if not tasks:
        raise InvalidInput("No lines in username:password format")

    return tasks
