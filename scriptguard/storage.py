"""
File-backed storage for jobs, version artifacts, version metadata and audit logs.
Whole-file JSON writes; read-modify-write cycles are serialized per project root.
"""
import json
import logging
import os
import re
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Union

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import get_config
from .models.jobs import JobRecord
from .models.script import ScriptResult
from .models.versions import (
    AuditEntry,
    AuditFile,
    ProjectVersion,
    QualitySnapshot,
    VersionArtifacts,
    VersionMeta,
    VersionMetadataFile,
)
from .pipeline.script_io import normalize_script_payload, to_persisted_script
from .pipeline.text import normalize_domain, slugify


logger = logging.getLogger(__name__)


_SCRIPT_FILE = re.compile(r"^(?P<root>.+)-v(?P<version>\d+)-script\.json$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    return uuid.uuid4().hex[:12]


def project_root_name(url: str, owner: Optional[str] = None) -> str:
    """Stable output name for a project: slug of the site host, plus the owner slug if given."""
    root = slugify(normalize_domain(url) or url) or "project"
    if owner and slugify(owner):
        root = f"{root}--{slugify(owner)}"
    return root


def safe_read_json(path: Union[str, Path]) -> Optional[Any]:
    """
    Read JSON, treating absent and corrupt files alike as None.
    The two cases log at different levels so they stay distinguishable.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        logger.debug(f"JSON file absent: {path}")
        return None
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"JSON file corrupt, treating as absent: {path} ({e})")
        return None


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    retry=retry_if_exception_type(PermissionError),
    before_sleep=lambda retry_state: logger.warning(
        f"Replace retry attempt {retry_state.attempt_number}"
    ),
    reraise=True,
)
def _replace(tmp: Path, path: Path) -> None:
    os.replace(tmp, path)


def atomic_write_json(path: Union[str, Path], data: Any) -> Path:
    """Write JSON atomically: tmp + fsync + os.replace."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.{uuid.uuid4().hex[:6]}.tmp")
    payload = json.dumps(data, indent=2, ensure_ascii=False).encode("utf-8")
    fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
    try:
        os.write(fd, payload)
        os.fsync(fd)
    finally:
        os.close(fd)
    _replace(tmp, path)
    return path


class RootLocks:
    """One re-entrant lock per project root."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}

    def get(self, root: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(root)
            if lock is None:
                lock = self._locks[root] = threading.RLock()
            return lock

    def __call__(self, root: str) -> threading.RLock:
        return self.get(root)


class ProjectStore:
    """
    JSON file store rooted at an output directory.

    Layout:
        <root>-v<N>-script.json
        <root>-v<N>-quality.json
        <root>-version-meta.json
        <root>-audit.json
        jobs/<job_id>.json
    """

    def __init__(self, output_dir: Optional[Union[str, Path]] = None, locks: Optional[RootLocks] = None):
        self.output_dir = Path(output_dir) if output_dir else get_config().storage.output_dir
        self.jobs_dir = self.output_dir / "jobs"
        self.locks = locks or RootLocks()
        self._jobs_lock = threading.RLock()

    # Paths

    def script_path(self, root: str, version: int) -> Path:
        return self.output_dir / f"{root}-v{version}-script.json"

    def quality_path(self, root: str, version: int) -> Path:
        return self.output_dir / f"{root}-v{version}-quality.json"

    def metadata_path(self, root: str) -> Path:
        return self.output_dir / f"{root}-version-meta.json"

    def audit_path(self, root: str) -> Path:
        return self.output_dir / f"{root}-audit.json"

    def job_path(self, job_id: str) -> Path:
        return self.jobs_dir / f"{job_id}.json"

    # Jobs

    def save_job(self, job: JobRecord) -> Path:
        with self._jobs_lock:
            return atomic_write_json(self.job_path(job.id), job.model_dump(by_alias=True, mode="json"))

    def load_job(self, job_id: str) -> Optional[JobRecord]:
        data = safe_read_json(self.job_path(job_id))
        if data is None:
            return None
        try:
            return JobRecord.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Job record {job_id} failed validation, treating as absent: {e}")
            return None

    def iter_jobs(self) -> Iterator[JobRecord]:
        if not self.jobs_dir.exists():
            return
        for path in sorted(self.jobs_dir.glob("*.json")):
            job = self.load_job(path.stem)
            if job is not None:
                yield job

    def list_jobs(self, root: Optional[str] = None) -> list[JobRecord]:
        jobs = [job for job in self.iter_jobs() if root is None or job.root == root]
        return sorted(jobs, key=lambda job: (job.root, job.version, job.created_at))

    def next_version(self, root: str) -> int:
        """One past the highest version seen in job records or script files for the root."""
        versions = [job.version for job in self.iter_jobs() if job.root == root]
        if self.output_dir.exists():
            for path in self.output_dir.glob(f"{root}-v*-script.json"):
                match = _SCRIPT_FILE.match(path.name)
                if match and match.group("root") == root:
                    versions.append(int(match.group("version")))
        return max(versions, default=0) + 1

    # Version artifacts

    def save_script(self, root: str, version: int, script: ScriptResult) -> Path:
        return atomic_write_json(self.script_path(root, version), to_persisted_script(script))

    def load_script(self, root: str, version: int) -> Optional[ScriptResult]:
        data = safe_read_json(self.script_path(root, version))
        if data is None:
            return None
        try:
            return normalize_script_payload(data)
        except ValueError as e:
            logger.warning(f"Script {root} v{version} is not a JSON object: {e}")
            return None

    def latest_script(self, root: str) -> Optional[tuple[int, ScriptResult]]:
        """Highest-numbered readable script for the root."""
        for version in range(self.next_version(root) - 1, 0, -1):
            script = self.load_script(root, version)
            if script is not None:
                return version, script
        return None

    def save_quality(self, root: str, version: int, payload: dict[str, Any]) -> Path:
        return atomic_write_json(self.quality_path(root, version), payload)

    def load_quality(self, root: str, version: int) -> Optional[dict[str, Any]]:
        data = safe_read_json(self.quality_path(root, version))
        return data if isinstance(data, dict) else None

    # Metadata and audit

    def load_metadata(self, root: str) -> VersionMetadataFile:
        """Metadata for the root; a fresh default (with default policy) if absent or corrupt."""
        data = safe_read_json(self.metadata_path(root))
        if isinstance(data, dict):
            try:
                return VersionMetadataFile.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Version metadata for {root} failed validation, using defaults: {e}")
        return VersionMetadataFile(root_output_name=root)

    def save_metadata(self, metadata: VersionMetadataFile) -> Path:
        with self.locks(metadata.root_output_name):
            return atomic_write_json(
                self.metadata_path(metadata.root_output_name),
                metadata.model_dump(by_alias=True, mode="json"),
            )

    def load_audit(self, root: str) -> AuditFile:
        data = safe_read_json(self.audit_path(root))
        if isinstance(data, dict):
            try:
                return AuditFile.model_validate(data)
            except ValidationError as e:
                logger.warning(f"Audit log for {root} failed validation, starting fresh: {e}")
        return AuditFile(root_output_name=root)

    def append_audit(
        self,
        root: str,
        entry_type: str,
        job_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> AuditEntry:
        entry = AuditEntry(
            type=entry_type,
            at=utc_now(),
            root_output_name=root,
            job_id=job_id,
            details=details or {},
        )
        with self.locks(root):
            audit = self.load_audit(root)
            audit.entries.append(entry)
            atomic_write_json(self.audit_path(root), audit.model_dump(by_alias=True, mode="json"))
        logger.info(f"Audit {root}: {entry_type}" + (f" job={job_id}" if job_id else ""))
        return entry

    def list_roots(self) -> list[str]:
        roots = {job.root for job in self.iter_jobs()}
        if self.output_dir.exists():
            for path in self.output_dir.glob("*-version-meta.json"):
                roots.add(path.name[: -len("-version-meta.json")])
        return sorted(roots)

    # Versions

    def list_project_versions(self, root: str) -> list[ProjectVersion]:
        """Every job of the root as a version, joined with its metadata and quality snapshot."""
        metadata = self.load_metadata(root)
        versions = []
        for job in self.list_jobs(root):
            versions.append(ProjectVersion(
                id=job.id,
                root=root,
                version=job.version,
                status=job.status,
                mode=job.mode,
                created_at=job.created_at,
                quality=self._quality_snapshot(root, job.version),
                artifacts=self._resolve_artifacts(root, job),
                meta=metadata.entries.get(job.id) or VersionMeta(),
            ))
        return versions

    def _quality_snapshot(self, root: str, version: int) -> QualitySnapshot:
        payload = self.load_quality(root, version)
        if not payload:
            return QualitySnapshot()
        report = payload.get("qualityReport") or {}
        if not isinstance(report, dict):
            logger.warning(f"Quality report for {root} v{version} is not an object, treating as absent")
            return QualitySnapshot()

        def count(key: str) -> int:
            items = report.get(key)
            return len(items) if isinstance(items, list) else 0

        try:
            return QualitySnapshot(
                score=report.get("score", 0),
                passed=bool(report.get("passed", False)),
                blockers=count("blockers"),
                warnings=count("warnings"),
                domain_pack=payload.get("domainPack"),
                template=payload.get("template"),
                generation_mode=payload.get("generationMode"),
            )
        except ValidationError as e:
            logger.warning(f"Quality report for {root} v{version} failed validation, treating as absent: {e}")
            return QualitySnapshot()

    def _resolve_artifacts(self, root: str, job: JobRecord) -> VersionArtifacts:
        """Artifact paths that exist on disk; anything missing is None."""
        def existing(path: Optional[Union[str, Path]]) -> Optional[str]:
            if path and Path(path).is_file():
                return str(path)
            return None

        return VersionArtifacts(
            script_path=existing(job.artifacts.script_path or self.script_path(root, job.version)),
            quality_path=existing(job.artifacts.quality_path or self.quality_path(root, job.version)),
            video_path=existing(job.artifacts.video_path),
            audio_path=existing(job.artifacts.audio_path),
        )