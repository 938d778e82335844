"""
Shopguard access-control engine for the shop-loyalty document store.

Decides allow or deny for every read and write against the users, shops,
transactions, logs and service collections: role resolution, per-field
write rules, closed document schemas, query-filter gating, and an
in-memory store for embedding and testing.
"""

from . import diff
from . import engine
from . import errors
from . import policies
from . import principal
from . import query
from . import request
from . import schema
from . import store
from . import validators

from .engine import Decision, EvaluationResult, authorize, evaluate
from .principal import Principal
from .request import Operation, Request

__version__ = "1.0.0"

__all__ = [
    "diff",
    "engine",
    "errors",
    "policies",
    "principal",
    "query",
    "request",
    "schema",
    "store",
    "validators",
    "Decision",
    "EvaluationResult",
    "Operation",
    "Principal",
    "Request",
    "authorize",
    "evaluate",
]
