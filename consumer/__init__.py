# Consumer module
from .classifier import Classification, CredentialClassifier, LeakCheckClient
from .sweeper import JobSweeper
from .worker import JobProcessor

__all__ = ["Classification", "CredentialClassifier", "LeakCheckClient", "JobSweeper", "JobProcessor"]
