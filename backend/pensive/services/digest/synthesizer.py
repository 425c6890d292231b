"""Time-windowed digest synthesis."""
import html
import logging
from datetime import datetime
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.orm import Session

from pensive.config import settings
from pensive.exceptions import InvalidDigestTransition
from pensive.models.analysis import Analysis
from pensive.models.content import Content
from pensive.models.digest import Digest, DigestStatus, DigestTimeframe
from pensive.services.ai.digest_writer import DigestItem, DigestWriter
from pensive.utils.time import utcnow

logger = logging.getLogger(__name__)

TIMEFRAME_WINDOWS: Dict[DigestTimeframe, relativedelta] = {
    DigestTimeframe.WEEKLY: relativedelta(days=7),
    DigestTimeframe.MONTHLY: relativedelta(months=1),
    DigestTimeframe.QUARTERLY: relativedelta(months=3),
}

ALLOWED_TRANSITIONS: Dict[DigestStatus, set] = {
    DigestStatus.DRAFT: {DigestStatus.SCHEDULED},
    DigestStatus.SCHEDULED: {DigestStatus.SENT},
    DigestStatus.SENT: set(),
}


def window_start(timeframe: DigestTimeframe, now: Optional[datetime] = None) -> datetime:
    """Earliest created_at included in a digest of this timeframe."""
    return (now or utcnow()) - TIMEFRAME_WINDOWS[DigestTimeframe(timeframe)]


def check_transition(digest: Digest, new_status: DigestStatus) -> DigestStatus:
    """Raise InvalidDigestTransition unless ``digest`` may move to ``new_status``."""
    new_status = DigestStatus(new_status)
    if new_status not in ALLOWED_TRANSITIONS[digest.status]:
        raise InvalidDigestTransition(
            f"Digest {digest.id} cannot move from {digest.status.value} to {new_status.value}"
        )
    return new_status


def transition(digest: Digest, new_status: DigestStatus) -> Digest:
    """Move a digest along Draft -> Scheduled -> Sent.

    Raises:
        InvalidDigestTransition: any other change, including leaving Sent
    """
    new_status = check_transition(digest, new_status)
    digest.status = new_status
    if new_status == DigestStatus.SENT:
        digest.sent_at = utcnow()
    return digest


def render_digest_html(digest: Digest) -> str:
    """Plain HTML email body for a digest."""
    paragraphs = [
        f"<p>{html.escape(block).replace(chr(10), '<br>')}</p>"
        for block in digest.body.split("\n\n")
        if block.strip()
    ]
    return (
        f"<h1>{html.escape(digest.title)}</h1>\n"
        + "\n".join(paragraphs)
        + f"\n<p><small>{len(digest.referenced_content_ids)} items from your "
        f"{digest.timeframe.value} reading</small></p>"
    )


class DigestSynthesizer:
    """Select a user's recent content and have the writer summarize it."""

    def __init__(self, db: Session, writer: DigestWriter, max_items: int | None = None):
        self.db = db
        self.writer = writer
        self.max_items = max_items or settings.digest_max_items

    def select_items(
        self,
        user_id: str,
        timeframe: DigestTimeframe,
        now: Optional[datetime] = None,
    ) -> List[DigestItem]:
        """Content created since the window start, newest first, with summaries."""
        cutoff = window_start(timeframe, now)
        rows = self.db.execute(
            select(Content, Analysis.summary_long)
            .outerjoin(Analysis, Analysis.content_id == Content.id)
            .where(Content.user_id == user_id, Content.created_at >= cutoff)
            .order_by(Content.created_at.desc(), Content.id.desc())
            .limit(self.max_items)
        ).all()
        return [
            DigestItem(
                content_id=content.id,
                title=content.title,
                url=content.url,
                summary=summary or content.body[:500],
            )
            for content, summary in rows
        ]

    async def generate(
        self,
        user_id: str,
        timeframe: DigestTimeframe,
        now: Optional[datetime] = None,
        *,
        commit: bool = True,
    ) -> Digest | None:
        """Generate and store a digest, or return None when the window is empty.

        With ``commit=False`` the digest is only flushed, so the caller can
        enqueue follow-up work in the same transaction.
        """
        timeframe = DigestTimeframe(timeframe)
        items = self.select_items(user_id, timeframe, now)
        # End the read transaction before the summarizer call.
        self.db.commit()

        if not items:
            logger.info("No content for %s digest of user %s", timeframe.value, user_id)
            return None

        output = await self.writer.write_digest(timeframe, items)

        digest = Digest(
            user_id=user_id,
            timeframe=timeframe,
            title=output.title,
            body=output.body,
            referenced_content_ids=[item.content_id for item in items],
            status=DigestStatus.SCHEDULED,
        )
        self.db.add(digest)
        if commit:
            self.db.commit()
        else:
            self.db.flush()
        logger.info(
            "Generated %s digest %s for user %s from %s items",
            timeframe.value,
            digest.id,
            user_id,
            len(items),
        )
        return digest
