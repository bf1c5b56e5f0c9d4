"""Custom exception hierarchy for recurrence_lite.

Only a few failures are allowed to escape the core: everything about a
recurrence rule degrades to a usable (if less precise) result, so the
exceptions below are limited to bad import records, unknown recurrence
kinds and broken configuration.
"""


class LiteRecurrenceError(Exception):
    """Base exception for all recurrence_lite errors.

    Callers that only want to know "did the recurrence layer fail" can catch
    this single type.
    """


class LiteRRuleParseError(LiteRecurrenceError):
    """RRULE text could not be interpreted.

    Raised when:
    - The rule is empty or has no FREQ token
    - INTERVAL is not an integer

    Never escapes LiteRRuleInterpreter.parse(); the interpreter catches it
    and falls back to a non-recurrent or default-horizon result.
    """


class LiteImportRecordError(LiteRecurrenceError):
    """A single calendar record cannot be imported.

    Raised when:
    - DTSTART or DTEND is missing from the record
    - A date token does not match any accepted format
    - The ICS document itself cannot be parsed

    The importer collects these per record; the caller decides whether to
    skip the record or abort the batch.
    """


class LiteUnsupportedRecurrenceError(LiteRecurrenceError):
    """The recurrence kind has no registered period generator.

    Raised when a frequency tag (for instance "hourly" passed through from an
    RRULE) is looked up in the recurrence kind registry.
    """


class LiteConfigError(LiteRecurrenceError):
    """Configuration file is unreadable or not a mapping."""
