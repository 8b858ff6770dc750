"""
Flat import surface for the storage layer.
"""
from core.db.schema import init_db
from core.db.users import *  # noqa: F401,F403
from core.db.users import __all__ as _users_all
from core.db.limits import *  # noqa: F401,F403
from core.db.limits import __all__ as _limits_all

__all__ = ["init_db", *_users_all, *_limits_all]
