import os
from dotenv import load_dotenv

load_dotenv()

# === Raw environment values ===

TELEGRAM_TOKEN = os.getenv("TELEGRAM_TOKEN")

# Base URL GitHub and the OAuth redirect reach this service on
PUBLIC_URL = (os.getenv("PUBLIC_URL") or "").rstrip("/")

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

GITHUB_WEBHOOK_SECRET = os.getenv("GITHUB_WEBHOOK_SECRET")

# GitHub OAuth app
GITHUB_CLIENT_ID = os.getenv("GITHUB_CLIENT_ID")
GITHUB_CLIENT_SECRET = os.getenv("GITHUB_CLIENT_SECRET")

# 16/24/32 raw bytes or 64 hex chars
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")

PORT = int(os.getenv("PORT", "8080"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

TELEGRAM_POLLING_ENABLED = (
    os.getenv("TELEGRAM_POLLING_ENABLED", "true").lower() == "true"
)

# Retention windows for in-memory state
MESSAGE_CONTEXT_TTL_HOURS = float(os.getenv("MESSAGE_CONTEXT_TTL_HOURS", "48"))
ACTION_TTL_HOURS = float(os.getenv("ACTION_TTL_HOURS", "48"))
OAUTH_STATE_TTL_MINUTES = float(os.getenv("OAUTH_STATE_TTL_MINUTES", "10"))
ADMIN_CACHE_TTL_MINUTES = float(os.getenv("ADMIN_CACHE_TTL_MINUTES", "60"))
RELOAD_COOLDOWN_MINUTES = float(os.getenv("RELOAD_COOLDOWN_MINUTES", "10"))

CACHE_CLEANUP_INTERVAL_SECONDS = float(
    os.getenv("CACHE_CLEANUP_INTERVAL_SECONDS", "600")
)

# Configurable messages

START_MESSAGE = """<b>Welcome to the GitHub Bot!</b> 🤖

I can help you manage your GitHub repositories and notifications directly from Telegram.

<b>Get Started:</b>
1. Use /connect to link your GitHub account.
2. Use /addrepo to link a repository and start receiving notifications.
3. Use /settings to customize your notification preferences.

Need help? Type /help for a full list of commands."""

HELP_MESSAGE = """<b>GitHub Bot Commands:</b>

<b>Account</b>
/connect - Link your GitHub account (<i>Must be used in private chat</i>)
/logout - Forget your GitHub token

<b>Repository Management</b>
/addrepo [owner/repo] - Link a repository
/removerepo [owner/repo] - Unlink a repository
/repos - List linked repositories
/close - Close an issue or PR (reply to notification).
/reopen - Reopen an issue or PR (reply to notification).
/approve - Approve a PR (reply to notification).

<b>Configuration</b>
/settings - Configure event notifications
/reload - Reload admin cache

Reply to any issue or PR notification to post your message as a comment."""

PRIVACY_MESSAGE = """<b>Privacy Policy</b>

<b>1. Data Collection</b>
• <b>Telegram Data:</b> We store your Telegram user id, chat id and chat title to route notifications and check permissions.
• <b>GitHub Data:</b> When you connect your account we store your encrypted OAuth token, the repositories you link and the webhook ids created for them.
• <b>Events:</b> Webhook payloads are processed in memory and are not stored.

<b>2. Data Usage</b>
Your data is only used to send notifications, manage repository links and verify permissions. OAuth tokens are encrypted with AES-GCM before they are stored.

<b>3. Data Sharing</b>
We do <b>not</b> share, sell or rent your data. GitHub only receives the requests needed to perform the actions you ask for.

<b>4. Your Controls</b>
Use /logout to forget your token and /removerepo to unlink repositories."""

CONTEXT_EXPIRED_MESSAGE = "Context not found. The message might be too old."
ACTION_EXPIRED_MESSAGE = "Action expired. Please open the PR link manually."
AUTH_FAILED_MESSAGE = (
    "⚠️ <b>GitHub authentication failed.</b>\n"
    "It seems your token has expired or was revoked. Please /connect again."
)


def validate_settings() -> None:
    """
    Validate required bot configuration.

    Raises RuntimeError listing every missing variable.
    """
    required = {
        "TELEGRAM_TOKEN": TELEGRAM_TOKEN,
        "PUBLIC_URL": PUBLIC_URL,
        "GITHUB_WEBHOOK_SECRET": GITHUB_WEBHOOK_SECRET,
        "GITHUB_CLIENT_ID": GITHUB_CLIENT_ID,
        "GITHUB_CLIENT_SECRET": GITHUB_CLIENT_SECRET,
        "ENCRYPTION_KEY": ENCRYPTION_KEY,
    }

    missing = [name for name, value in required.items() if not value]
    if missing:
        raise RuntimeError(
            f"Missing required environment variables: {', '.join(missing)}"
        )
