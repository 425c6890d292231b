"""Job handlers, one per job kind."""
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pensive.exceptions import TransientNetworkError
from pensive.models.analysis import Analysis
from pensive.models.content import Content
from pensive.models.digest import Digest, DigestStatus
from pensive.models.job import Job, JobKind
from pensive.models.source import Source
from pensive.models.user_settings import UserSettings
from pensive.schemas.job import (
    AnalyzeContentPayload,
    FetchFeedPayload,
    GenerateDigestPayload,
    SendEmailPayload,
)
from pensive.services.ai.analyzer import ContentAnalyzer
from pensive.services.ai.digest_writer import DigestWriter
from pensive.services.digest.synthesizer import (
    DigestSynthesizer,
    check_transition,
    render_digest_html,
    transition,
)
from pensive.services.graph.builder import ConceptGraphBuilder
from pensive.services.ingestion.feed_fetcher import FeedFetcher
from pensive.services.ingestion.rss import RSSIngester
from pensive.services.jobs.store import JobStore
from pensive.services.mail import Mailer, build_mailer

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    """External collaborators shared by all jobs of a batch."""

    fetcher: FeedFetcher
    analyzer: ContentAnalyzer
    digest_writer: DigestWriter
    mailer: Mailer

    @classmethod
    def default(cls) -> "PipelineServices":
        return cls(
            fetcher=FeedFetcher(),
            analyzer=ContentAnalyzer(),
            digest_writer=DigestWriter(),
            mailer=build_mailer(),
        )


@dataclass
class JobContext:
    """What a handler gets besides its payload. ``db`` is private to the job."""

    db: Session
    store: JobStore
    services: PipelineServices
    job: Job


Handler = Callable[[JobContext, Any], Awaitable[None]]


async def handle_fetch_feed(ctx: JobContext, payload: FetchFeedPayload) -> None:
    """Fetch a feed, store its new entries and enqueue their analysis."""
    source = ctx.db.get(Source, payload.source_id)
    if source is None or not source.is_active or source.user_id != payload.user_id:
        logger.info("Skipping feed %s: missing or inactive", payload.source_id)
        return

    ingester = RSSIngester(ctx.db, ctx.store, source, ctx.services.fetcher)
    await ingester.ingest()


async def handle_analyze_content(ctx: JobContext, payload: AnalyzeContentPayload) -> None:
    """Analyze content once and weave its entities into the concept graph.

    The analysis row and the graph updates are committed together; a content
    item that already has an analysis is skipped, so retries never count its
    concepts twice.
    """
    content = ctx.db.get(Content, payload.content_id)
    if content is None:
        logger.warning("Content %s no longer exists, skipping analysis", payload.content_id)
        return
    already_analyzed = ctx.db.execute(
        select(Analysis.id).where(Analysis.content_id == content.id)
    ).first()
    # End the read transaction before the summarizer call.
    ctx.db.commit()
    if already_analyzed:
        logger.info("Content %s already analyzed", content.id)
        return

    analyzer = ctx.services.analyzer
    output = await analyzer.analyze(
        payload.title or content.title,
        payload.content or content.body,
        payload.url or content.url,
    )

    analysis = Analysis(
        content_id=content.id,
        user_id=content.user_id,
        summary_short=output.summary.short,
        summary_long=output.summary.paragraph,
        entities=[entity.model_dump() for entity in output.entities],
        tags=output.tags,
        priority=output.priority,
        confidence=output.confidence,
        model_provider=analyzer.model_config.provider,
        model_name=analyzer.model_config.model,
        prompt_version=analyzer.prompt_info["version"],
    )
    try:
        with ctx.db.begin_nested():
            ctx.db.add(analysis)
    except IntegrityError:
        ctx.db.rollback()
        logger.info("Content %s was analyzed concurrently, dropping duplicate result", content.id)
        return

    graph = ConceptGraphBuilder(ctx.db).ingest(content.user_id, content.id, output.entities)
    ctx.db.commit()
    logger.info(
        "Analyzed content %s: %s entities, %s new concepts",
        content.id,
        len(output.entities),
        graph.concepts_created,
    )


async def handle_generate_digest(ctx: JobContext, payload: GenerateDigestPayload) -> None:
    """Generate a digest and queue its delivery when the user has a digest email."""
    synthesizer = DigestSynthesizer(ctx.db, ctx.services.digest_writer)
    digest = await synthesizer.generate(payload.user_id, payload.timeframe, commit=False)
    if digest is None:
        return

    user_settings = ctx.db.execute(
        select(UserSettings).where(UserSettings.user_id == payload.user_id)
    ).scalar_one_or_none()
    if user_settings is not None and user_settings.digest_email:
        ctx.store.enqueue(
            JobKind.SEND_EMAIL,
            SendEmailPayload(
                to=user_settings.digest_email,
                subject=digest.title,
                html=render_digest_html(digest),
                digest_id=digest.id,
            ),
            user_id=payload.user_id,
            commit=False,
        )
    ctx.db.commit()


async def handle_send_email(ctx: JobContext, payload: SendEmailPayload) -> None:
    """Send a message and mark its digest sent. A failed send leaves it scheduled.

    A digest that cannot move to Sent fails the job before anything is mailed.
    """
    digest = None
    if payload.digest_id is not None:
        digest = ctx.db.get(Digest, payload.digest_id)
        if digest is not None and digest.status == DigestStatus.SENT:
            ctx.db.commit()
            logger.info("Digest %s already sent", digest.id)
            return
    ctx.db.commit()
    if digest is not None:
        check_transition(digest, DigestStatus.SENT)

    delivered = await ctx.services.mailer.send(payload.to, payload.subject, payload.html)
    if not delivered:
        raise TransientNetworkError(f"Mail delivery to {payload.to} failed")

    if digest is not None:
        transition(digest, DigestStatus.SENT)
        ctx.db.commit()


HANDLERS: Dict[JobKind, Handler] = {
    JobKind.FETCH_FEED: handle_fetch_feed,
    JobKind.ANALYZE_CONTENT: handle_analyze_content,
    JobKind.GENERATE_DIGEST: handle_generate_digest,
    JobKind.SEND_EMAIL: handle_send_email,
}

_unhandled = set(JobKind) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"Job kinds without a handler: {sorted(k.value for k in _unhandled)}")
