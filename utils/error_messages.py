"""
Error Message Utilities

Turns raw database and driver errors into human-readable reasons for the
error entries returned to callers. Unrecognized messages pass through
unchanged so no detail the database reported is lost.
"""

import re

# Tables this service reads, used to hint at a missing schema
KNOWN_TABLES = ["series", "events"]

CONNECTION_HINTS = {
    "connection refused": "Database is not reachable (connection refused). Check DB_HOST and DB_PORT.",
    "connection was closed": "Database connection was closed while the statement was running.",
    "connection reset": "Database connection was reset while the statement was running.",
    "the database system is shutting down": "Database is shutting down.",
    "the database system is starting up": "Database is starting up; try again shortly.",
    "password authentication failed": "Database rejected the credentials. Check DB_USER and DB_PASSWORD.",
}


def enhance_error_message(error: BaseException) -> str:
    """
    Enhance database error messages with human-readable explanations.

    Handles:
    - Missing tables (the schema has not been applied)
    - Missing columns (statement and schema disagree)
    - Syntax errors
    - Connection-level failures (refused, reset, shutdown, bad credentials)

    Returns the enhanced error message string.
    """
    error_str = str(error) or type(error).__name__

    table_match = re.search(r'relation "(\w+)" does not exist', error_str)
    if table_match:
        table = table_match.group(1)
        hint = " Run utils/init_db.py to apply schema.sql." if table in KNOWN_TABLES else ""
        return f"Table '{table}' does not exist.{hint} {error_str}"

    column_match = re.search(r'column "?([\w.]+)"? does not exist', error_str)
    if column_match:
        return (
            f"Column '{column_match.group(1)}' does not exist. "
            f"The database schema does not match the statement. {error_str}"
        )

    syntax_match = re.search(r'syntax error at or near "([^"]*)"', error_str)
    if syntax_match:
        return f"SQL syntax error near '{syntax_match.group(1)}'. {error_str}"

    lowered = error_str.lower()
    for needle, message in CONNECTION_HINTS.items():
        if needle in lowered:
            return f"{message} ({error_str})"

    return error_str

