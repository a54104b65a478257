"""
Edit Lock
Optional passphrase gate in front of add/delete/share actions.

The passphrase is read from the server environment and compared on the
server, so it never reaches the browser. This only locks the dashboard's
edit controls against casual use. There are no user accounts and the data
itself is not protected: anyone holding a shared link can read it.
"""

import hmac
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

PASSWORD_ENV = "TRIAGE_EDIT_PASSWORD"


def get_edit_password() -> Optional[str]:
    return os.environ.get(PASSWORD_ENV) or None


def edit_lock_enabled() -> bool:
    """Whether a passphrase has been configured."""
    return get_edit_password() is not None


def check_passphrase(candidate: Optional[str]) -> bool:
    """
    Compare a typed passphrase with the configured one.

    Always True when no passphrase is configured.
    """
    expected = get_edit_password()
    if expected is None:
        return True
    if not candidate:
        return False
    return hmac.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))
