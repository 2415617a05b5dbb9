"""
Tests for the generate / improve / rerender flow.
"""
import pytest

from scriptguard.jobs import JobQueue
from scriptguard.models.improve import StopReason
from scriptguard.models.jobs import RenderCompletion
from scriptguard.models.quality import GenerationMode
from scriptguard.models.versions import JobStatus, VersionArtifacts, VersionMode
from scriptguard.service import ProjectService, default_improve_options


class TestProjectService:
    """Test version persistence and rerender queueing."""

    @pytest.fixture
    def service(self, store, tmp_path):
        renders = tmp_path / "renders"
        renders.mkdir()

        def render(job):
            video = renders / f"{job.root}-v{job.version}.mp4"
            video.write_bytes(b"\x00")
            return RenderCompletion(
                status=JobStatus.COMPLETED,
                exit_code=0,
                artifacts=VersionArtifacts(video_path=str(video)),
            )

        queue = JobQueue(store, render)
        yield ProjectService(store, queue)
        queue.stop()

    def test_generate_persists_version_one(self, service, store, good_script, saas_scraped):
        job, gate = service.generate(saas_scraped, [good_script])
        service.queue.join()

        assert gate.generation_mode == GenerationMode.MODEL
        assert job.root == "opspilot-io"
        assert job.version == 1
        assert store.load_script("opspilot-io", 1) == gate.script
        quality = store.load_quality("opspilot-io", 1)
        assert quality["domainPack"] == "b2b-saas"
        assert quality["qualityReport"]["passed"] is True
        assert store.load_job(job.id).status == JobStatus.COMPLETED

    def test_generate_twice_increments_version(self, service, good_script, saas_scraped):
        first, _ = service.generate(saas_scraped, [good_script])
        second, _ = service.generate(saas_scraped, [good_script])
        service.queue.join()

        assert (first.version, second.version) == (1, 2)

    def test_auto_improve_requires_script(self, service, saas_scraped):
        with pytest.raises(KeyError):
            service.auto_improve("nothing-here", saas_scraped)

    def test_auto_improve_without_rerender_writes_nothing(self, service, store, good_script, saas_scraped):
        service.generate(saas_scraped, [good_script])
        service.queue.join()

        result, job = service.auto_improve("opspilot-io", saas_scraped)

        assert result.stop_reason == StopReason.ALREADY_MEETS_TARGET
        assert job is None
        assert store.next_version("opspilot-io") == 2

    def test_rerender_queued_and_auto_evaluated(self, service, store, good_script, saas_scraped):
        generated, _ = service.generate(saas_scraped, [good_script])
        service.queue.join()

        result, job = service.auto_improve("opspilot-io", saas_scraped, rerender=True, auto_promote_if_winner=True)
        service.queue.join()

        assert result.succeeded
        assert job.mode == VersionMode.RERENDER
        assert job.version == 2
        assert job.options.source_job_id == generated.id
        assert store.load_script("opspilot-io", 2) is not None

        stored = store.load_job(job.id)
        assert stored.status == JobStatus.COMPLETED
        assert stored.auto_promote_evaluated_at is not None
        types = [e.type for e in store.load_audit("opspilot-io").entries]
        assert "rerender-queued" in types
        assert sum(1 for t in types if t.startswith("autopromote-")) == 1

    def test_default_improve_options_follow_config(self, monkeypatch):
        from scriptguard.config import reset_config

        monkeypatch.setenv("SCRIPTGUARD_TARGET_SCORE", "90")
        monkeypatch.setenv("SCRIPTGUARD_STRICT", "true")
        reset_config()

        options = default_improve_options()

        assert options.target_score == 90
        assert options.fail_on_warnings
        assert options.warning_budget == 0
