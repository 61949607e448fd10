# ---------------------------------------------------------
# Telegram user <-> GitHub account
# ---------------------------------------------------------
# Hash with github_user_id, github_username, encrypted_token, scopes
# Key format:
#   hookgram:user:{telegram_user_id}
USER_PREFIX = "hookgram:user:"


# ---------------------------------------------------------
# Chats the bot has seen
# ---------------------------------------------------------
# Hash with chat_type, title
CHAT_PREFIX = "hookgram:chat:"


# ---------------------------------------------------------
# Repositories linked to a chat
# ---------------------------------------------------------
# Hash of repo_full_name -> webhook_id
# Key format:
#   hookgram:chat_links:{chat_id}
CHAT_LINKS_PREFIX = "hookgram:chat_links:"


def user_key(telegram_id: int) -> str:
    return f"{USER_PREFIX}{telegram_id}"


def chat_key(chat_id: int) -> str:
    return f"{CHAT_PREFIX}{chat_id}"


def chat_links_key(chat_id: int) -> str:
    return f"{CHAT_LINKS_PREFIX}{chat_id}"
