"""
Password handling for object store users

Users are added with a plain text password from the management pages, but only the
bcrypt hash is ever persisted. See lfsmgmt.api.auth for the basic auth that guards the
management pages themselves.
"""
import logging

import bcrypt


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    """
    Check a plain text password against a stored bcrypt hash
    :param password: The password to check
    :param hashed: The hash as returned by hash_password
    :return: True if the password matches, False otherwise (also for a corrupt hash)
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        logging.warning("Stored password hash could not be parsed")
        return False
