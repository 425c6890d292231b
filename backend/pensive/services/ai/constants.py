"""Constants for AI services."""

# Input limits
MAX_CONTENT_CHARS = 12000
FALLBACK_CONTENT_CHARS = 1500
DIGEST_SUMMARY_CHARS = 600

# Slack on top of the model's own request timeout before the call is abandoned
TIMEOUT_GRACE_SECONDS = 5
