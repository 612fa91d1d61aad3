"""Bus subject constants and subject pattern matching.

Subjects are dot-separated token paths (``service.create.aws.error``).

Wildcard syntax
---------------
``*``   matches exactly one token.
        "logger.*" matches "logger.set" but NOT "logger" or "logger.a.b".

``>``   matches one or more trailing tokens; only valid as the last token.
        "service.>" matches "service.create" and "service.create.aws",
        but NOT "service".

exact   no wildcards, literal subject comparison.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Control plane
# ---------------------------------------------------------------------------

LOGGER_SET = "logger.set"
LOGGER_DEL = "logger.del"
LOGGER_FIND = "logger.find"
LOGGER_LOG = "logger.log"

# ---------------------------------------------------------------------------
# Secret directory
# ---------------------------------------------------------------------------

DIRECTORY_FIND = "datacenter.find"
DIRECTORY_SET = "datacenter.set"

# ---------------------------------------------------------------------------
# Traffic patterns
# ---------------------------------------------------------------------------

# Adapters subscribe at wildcard depths 1-4.
ADAPTER_PATTERNS: tuple[str, ...] = ("*", "*.*", "*.*.*", "*.*.*.*")

# The router sees every subject at any depth.
ROUTER_PATTERN = ">"

# Prefix of private request/reply inboxes.
INBOX_PREFIX = "_INBOX."

# Default live-stream channel fed by the router.
STREAM_LOGS = "logs"


def is_excluded(subject: str) -> bool:
    """Return True for subjects that must never re-enter the redaction loop.

    ``logger.log`` carries records that were already routed once; reply
    inboxes carry request/reply traffic rather than published events.
    """
    return subject == LOGGER_LOG or subject.startswith(INBOX_PREFIX)


def subject_matches(pattern: str, subject: str) -> bool:
    """Return True if *subject* matches *pattern*.

    Examples::

        subject_matches("logger.set", "logger.set")          → True
        subject_matches("*.*", "logger.set")                 → True
        subject_matches("*.*", "service.create.aws")         → False
        subject_matches("service.>", "service.create.aws")   → True
        subject_matches(">", "anything.at.all")              → True
    """
    if "*" not in pattern and ">" not in pattern:
        return pattern == subject

    p_tokens = pattern.split(".")
    s_tokens = subject.split(".")

    for i, token in enumerate(p_tokens):
        if token == ">":
            # Must be last and must consume at least one token.
            return i == len(p_tokens) - 1 and len(s_tokens) > i
        if i >= len(s_tokens):
            return False
        if token == "*":
            if not s_tokens[i]:
                return False
            continue
        if token != s_tokens[i]:
            return False

    return len(p_tokens) == len(s_tokens)
