"""
Learn Turkic

Vocabulary learning for the Turkic languages with spaced repetition and
cognate similarity scoring.
"""

from . import db
from . import scheduler
from . import similarity
from . import session
from . import stats
from . import structured

__version__ = "0.1.0"
__all__ = ["db", "scheduler", "similarity", "session", "stats", "structured"]
