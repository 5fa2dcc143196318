"""Domain Types - rich types that replace bare primitives across the session core.

Invariants:
    - Did and Handle wrap str: account identity is never passed as an anonymous string
    - Every holder mutation is described by exactly one SessionEvent member
    - XRPC method names live in Nsid, never as inline literals in services/

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: log and compare as plain strings without custom encoders
"""

from enum import Enum
from typing import NewType


# --- Identity Types -------------------------------------------------------------

Did = NewType("Did", str)
Handle = NewType("Handle", str)


# --- Enums ----------------------------------------------------------------------

class SessionEvent(str, Enum):
    """Change notifications emitted by SessionHolder to its subscribers."""
    DATA_REPLACED = "data_replaced"
    TOKENS_ROTATED = "tokens_rotated"
    STATUS_CHANGED = "status_changed"
    CLEARED = "cleared"


class Nsid(str, Enum):
    """XRPC methods the session core calls on the account service."""
    GET_SESSION = "com.atproto.session.get"
    CREATE_SESSION = "com.atproto.session.create"
    DELETE_SESSION = "com.atproto.session.delete"
    REFRESH_SESSION = "com.atproto.session.refresh"
    CREATE_ACCOUNT = "com.atproto.account.create"
    GET_ACCOUNTS_CONFIG = "com.atproto.server.getAccountsConfig"


class AuthScheme(str, Enum):
    """Which stored token an XRPC call presents as its bearer credential."""
    NONE = "none"
    ACCESS = "access"
    REFRESH = "refresh"
