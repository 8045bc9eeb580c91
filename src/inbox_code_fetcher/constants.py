"""Constants for Inbox Code Fetcher."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".inbox-code-fetcher"
ACCOUNT_PATH = CONFIG_DIR / "account.json"
ENV_USER = "INBOX_CODE_FETCHER_USER"
ENV_PASSWORD = "INBOX_CODE_FETCHER_PASSWORD"

# --- Mail store (single supported provider) ---
IMAP_HOST = "imap.qq.com"
IMAP_PORT = 993
IMAP_TIMEOUT = 120  # seconds, socket connect/read
PRIMARY_FOLDER = "INBOX"
HEADER_FIELDS = "FROM TO SUBJECT DATE"

# --- Timing (seconds) ---
DEFAULT_MAX_WAIT = 120
POLL_INTERVAL = 2
JUNK_SWITCH_AFTER = 30
SEARCH_WINDOW = 5 * 60
MAX_MESSAGE_AGE = 2 * 60

# --- Scheduler ---
MAX_CANDIDATES_PER_POLL = 10  # newest uids only

# --- Retries (whole-call, connection failures only) ---
DEFAULT_RETRY_ATTEMPTS = 1
RETRY_WAIT_MIN = 1
RETRY_WAIT_MAX = 10

# --- Provenance keywords (lowercase) ---
VENDOR_SUBJECT_KEYWORDS = ["windsurf"]
VENDOR_SENDER_KEYWORDS = ["windsurf", "codeium", "exafunction"]
GENERIC_SUBJECT_KEYWORDS = ["verify", "verification"]

# --- Junk/spam folder names across providers, matched as substrings ---
JUNK_FOLDER_ALIASES = [
    "Junk",
    "Spam",
    "Deleted Messages",  # QQ Mail
    "Trash",
    "Bulk Mail",  # Yahoo / Outlook
    "[Gmail]/Spam",
    "INBOX.Junk",
    "INBOX.Spam",
]

# --- Logging ---
PREVIEW_CHARS = 200
