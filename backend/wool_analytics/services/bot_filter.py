"""
Bot and headless-browser detection on the reported User-Agent.
"""
import re

import structlog
from user_agents import parse as parse_ua

logger = structlog.get_logger()

BOT_SIGNATURE_RE = re.compile(
    r"bot|crawler|spider|crawling|headless|lighthouse|render|phantom|puppeteer"
    r"|chrome-lighthouse|gtmetrix|pingdom|pagespeed",
    re.IGNORECASE,
)


def is_bot(user_agent: str) -> bool:
    """
    True when the User-Agent belongs to a crawler, monitor or headless browser.

    An empty User-Agent is not treated as a bot: the tracker always sends
    one, and hand-rolled clients are rejected by origin instead.
    """
    if not user_agent:
        return False

    if BOT_SIGNATURE_RE.search(user_agent):
        return True

    try:
        return bool(parse_ua(user_agent).is_bot)
    except Exception as e:
        logger.warning("user_agent_parse_failed", error=str(e))
        return False
