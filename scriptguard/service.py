"""
Project service - wires the quality gate, auto-improve loop, store, job queue
and promotion engine into the generate / improve / rerender flow.
"""
import logging
from typing import Iterable, Optional, Union

from .config import get_config
from .jobs.queue import JobQueue
from .models.improve import AutoImproveResult, ImproveOptions
from .models.jobs import JobOptions, JobRecord
from .models.packs import PromotionSegment
from .models.quality import GenerationMode, QualityGateResult
from .models.scraped import ScrapedData
from .models.script import ScriptResult
from .models.versions import VersionMode
from .pipeline.classifier import DomainClassifier
from .pipeline.grounding import extract_grounding_hints, summarize_grounding_usage
from .pipeline.improve import auto_improve_script
from .pipeline.orchestrator import build_quality_payload, run_quality_gate
from .pipeline.templates import select_template
from .promotion.engine import PromotionEngine
from .storage import ProjectStore, project_root_name


logger = logging.getLogger(__name__)


def default_improve_options(strict: bool = False) -> ImproveOptions:
    config = get_config()
    return ImproveOptions(
        target_score=config.improve.target_score,
        min_score=config.quality.min_score,
        max_warnings=config.quality.max_warnings,
        fail_on_warnings=strict or config.quality.strict,
        max_steps=config.improve.max_steps,
        max_section_attempts=config.improve.max_section_attempts,
        stall_limit=config.improve.stall_limit,
    )


class ProjectService:
    """Entry point for generating, improving and re-rendering project versions."""

    def __init__(self, store: ProjectStore, queue: JobQueue, engine: Optional[PromotionEngine] = None):
        self.store = store
        self.queue = queue
        self.engine = engine or PromotionEngine(store)
        self.queue.add_completion_callback(self._on_job_complete)

    def _on_job_complete(self, job: JobRecord) -> None:
        if job.wants_auto_promote:
            self.engine.evaluate_auto_promote(job.id)

    def generate(
        self,
        scraped: ScrapedData,
        candidates: Iterable[Union[ScriptResult, dict]] = (),
        owner: Optional[str] = None,
        pack: str = "auto",
        template: str = "auto",
        strict: Optional[bool] = None,
        allow_low_quality: bool = False,
        skip_render: bool = False,
    ) -> tuple[JobRecord, QualityGateResult]:
        """
        Gate a script for a site, persist it as the next version and queue its render.

        Raises:
            RuntimeError: if the quality gate fails
        """
        result = run_quality_gate(
            scraped,
            candidates,
            pack=pack,
            template=template,
            strict=strict,
            allow_low_quality=allow_low_quality,
        )
        root = project_root_name(scraped.url or scraped.domain, owner)
        options = JobOptions(pack=pack, template=template, strict=bool(strict), skip_render=skip_render)
        with self.store.locks(root):
            version = self.store.next_version(root)
            self.store.save_script(root, version, result.script)
            self.store.save_quality(root, version, build_quality_payload(result, scraped.url))
            job = self.queue.submit(
                scraped.url, owner, VersionMode.GENERATE, options, root=root, version=version
            )
        return job, result

    def auto_improve(
        self,
        root: str,
        scraped: ScrapedData,
        pack: str = "auto",
        template: str = "auto",
        options: Optional[ImproveOptions] = None,
        rerender: bool = False,
        auto_promote_if_winner: bool = False,
        auto_promote_segment: Optional[PromotionSegment] = None,
    ) -> tuple[AutoImproveResult, Optional[JobRecord]]:
        """
        Improve the latest script of a root and optionally queue a rerender.

        Flow:
        1. Load the latest script and resolve its pack and template
        2. Run the auto-improve loop
        3. Persist the improved script and its quality file as the next version
        4. When rerender is requested and the goal was met, queue a rerender
           carrying the auto-promote options and audit it

        Raises:
            KeyError: if the root has no readable script
        """
        latest = self.store.latest_script(root)
        if latest is None:
            raise KeyError(f"No script found for {root}")
        source_version, script = latest

        requested_pack = script.domain_pack_id if pack == "auto" and script.domain_pack_id else pack
        pack_selection = DomainClassifier().select(scraped, requested_pack)
        template_selection = select_template(scraped, template, pack_selection.pack)
        hints = extract_grounding_hints(scraped)
        options = options or default_improve_options()

        result = auto_improve_script(
            script,
            scraped,
            pack_selection.pack,
            template=template_selection.profile,
            options=options,
            hints=hints,
        )
        logger.info(
            f"Auto-improve {root} v{source_version}: {result.initial_report.score} -> "
            f"{result.report.score} ({result.stop_reason.value})"
        )

        changed = any(step.accepted for step in result.steps)
        if not changed and not (rerender and result.succeeded):
            return result, None

        previous = self.store.load_quality(root, source_version) or {}
        gate = QualityGateResult(
            script=result.script,
            report=result.report,
            generation_mode=GenerationMode(previous.get("generationMode", GenerationMode.MODEL_AUTOFIX.value)),
            pack_selection=pack_selection,
            template_selection=template_selection,
            grounding=summarize_grounding_usage(result.script, hints),
            actions=[action for step in result.steps if step.accepted for action in step.actions],
        )
        source_job = next(
            (job for job in self.store.list_jobs(root) if job.version == source_version), None
        )
        url = scraped.url or (source_job.url if source_job else "")

        with self.store.locks(root):
            version = self.store.next_version(root)
            self.store.save_script(root, version, result.script)
            self.store.save_quality(root, version, build_quality_payload(gate, url))

            if not (rerender and result.succeeded):
                return result, None

            job_options = JobOptions(
                pack=pack_selection.pack.id,
                template=template_selection.profile.id,
                strict=options.fail_on_warnings,
                auto_promote_if_winner=auto_promote_if_winner,
                auto_promote_segment=auto_promote_segment,
                source_job_id=source_job.id if source_job else None,
            )
            job = self.queue.submit(
                url,
                source_job.owner if source_job else None,
                VersionMode.RERENDER,
                job_options,
                root=root,
                version=version,
            )
            self.store.append_audit(root, "rerender-queued", job.id, {
                "sourceVersion": source_version,
                "version": version,
                "score": result.report.score,
                "stopReason": result.stop_reason.value,
                "autoPromoteIfWinner": auto_promote_if_winner,
            })
        return result, job
