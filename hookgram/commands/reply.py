from hookgram.commands.session import describe_github_error, github_for_user, reply
from hookgram.github.api import GitHubAPIError
from hookgram.logger import get_logger
from hookgram.models import PR_REVIEW_COMMENT
from hookgram.services import Services
from hookgram.settings import CONTEXT_EXPIRED_MESSAGE
from hookgram.telegram.updates import IncomingMessage


logger = get_logger("hookgram.commands.reply")


def _replies_to_bot(services: Services, msg: IncomingMessage) -> bool:
    target = msg.reply_to
    if target is None or not target.from_bot:
        return False
    return not services.bot_user_id or target.from_id == services.bot_user_id


async def handle_reply(services: Services, msg: IncomingMessage):
    """
    Post a plain-text reply to a notification as a GitHub comment.

    Replies to review comments become threaded review replies; every
    other entity gets an issue comment.
    """
    if msg.reply_to is None or not msg.text.strip():
        return

    context, found = services.correlation.resolve_reply(msg.chat_id, msg.reply_to.message_id)
    if not found:
        # Ordinary conversation between members is not ours to answer
        if _replies_to_bot(services, msg):
            await reply(services, msg.chat_id, CONTEXT_EXPIRED_MESSAGE, reply_to=msg.message_id)
        return

    client, _ = github_for_user(services, msg.user_id)
    if client is None:
        logger.info("Ignoring reply from unlinked user %s", msg.user_id)
        return

    try:
        if context.type == PR_REVIEW_COMMENT and context.comment_id:
            await client.reply_to_review_comment(
                context.owner,
                context.repo,
                context.number,
                context.comment_id,
                msg.text,
            )
        else:
            await client.create_issue_comment(
                context.owner,
                context.repo,
                context.number,
                msg.text,
            )
    except GitHubAPIError as exc:
        logger.warning("Failed to post comment on %s#%s: %s", context.full_name, context.number, exc)
        await reply(
            services, msg.chat_id,
            describe_github_error(msg.user_id, exc),
            reply_to=msg.message_id,
        )
        return

    logger.info("Posted comment on %s#%s for user %s", context.full_name, context.number, msg.user_id)
