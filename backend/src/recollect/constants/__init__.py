"""Tunable constants.

Re-exports all constants for convenient importing:
    from recollect.constants import RRF_K, DEFAULT_VECTOR_WEIGHT
"""

from recollect.constants.chunking import *  # noqa: F403
from recollect.constants.embedding import *  # noqa: F403
from recollect.constants.search import *  # noqa: F403
from recollect.constants.ask import *  # noqa: F403
from recollect.constants.llm import *  # noqa: F403
from recollect.constants.indexing import *  # noqa: F403
