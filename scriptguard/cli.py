"""
Command line entrypoint.

  scriptguard classify --scraped site.json
  scriptguard score --scraped site.json --script script.json
  scriptguard improve --scraped site.json --script script.json --out improved.json
  scriptguard recommend --root opspilot-io
  scriptguard eval-packs
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import BaseModel

from .evaluation import evaluate_auto_promote, evaluate_packs
from .models.scraped import ScrapedData
from .pipeline.autofix import autofix_script
from .pipeline.classifier import DomainClassifier
from .pipeline.grounding import extract_grounding_hints
from .pipeline.improve import auto_improve_script
from .pipeline.quality import QualityScorer
from .pipeline.script_io import normalize_script_payload, to_persisted_script
from .pipeline.templates import select_template
from .promotion.engine import PromotionEngine
from .service import default_improve_options
from .storage import ProjectStore, atomic_write_json


logger = logging.getLogger(__name__)


def _load_json(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _emit(data: Any) -> None:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _load_inputs(args: argparse.Namespace):
    scraped = ScrapedData.model_validate(_load_json(args.scraped))
    selection = DomainClassifier().select(scraped, args.pack)
    template = select_template(scraped, args.template, selection.pack)
    script = normalize_script_payload(_load_json(args.script)) if getattr(args, "script", None) else None
    return scraped, selection, template, script


def _write_script(script, out: Optional[str]) -> None:
    if out:
        atomic_write_json(Path(out), to_persisted_script(script))
        logger.info(f"Script written to {out}")


def cmd_classify(args: argparse.Namespace) -> int:
    scraped, selection, template, _ = _load_inputs(args)
    _emit({
        "pack": selection.pack.id,
        "reason": selection.reason,
        "confidence": selection.confidence,
        "topCandidates": [c.model_dump() for c in selection.top_candidates],
        "template": template.profile.id,
        "templateReason": template.reason,
    })
    return 0


def cmd_score(args: argparse.Namespace) -> int:
    scraped, selection, template, script = _load_inputs(args)
    report = QualityScorer().score(
        script, scraped, selection.pack, template=template.profile, fail_on_warnings=args.strict
    )
    _emit(report)
    return 0 if report.passed else 1


def cmd_autofix(args: argparse.Namespace) -> int:
    scraped, selection, template, script = _load_inputs(args)
    result = autofix_script(script, scraped, selection.pack)
    report = QualityScorer().score(result.script, scraped, selection.pack, template=template.profile)
    _write_script(result.script, args.out)
    _emit({"actions": result.actions, "qualityReport": report.model_dump(mode="json")})
    return 0 if report.passed else 1


def cmd_improve(args: argparse.Namespace) -> int:
    scraped, selection, template, script = _load_inputs(args)
    options = default_improve_options(strict=args.strict)
    if args.max_steps is not None:
        options.max_steps = args.max_steps
    result = auto_improve_script(
        script,
        scraped,
        selection.pack,
        template=template.profile,
        options=options,
        hints=extract_grounding_hints(scraped),
    )
    _write_script(result.script, args.out)
    _emit({
        "stopReason": result.stop_reason.value,
        "initialScore": result.initial_report.score,
        "score": result.report.score,
        "steps": [step.model_dump(mode="json") for step in result.steps],
        "qualityReport": result.report.model_dump(mode="json"),
    })
    return 0 if result.succeeded else 1


def cmd_recommend(args: argparse.Namespace) -> int:
    engine = PromotionEngine(ProjectStore(args.output_dir))
    recommendation = engine.recommend(args.root, respect_pins=not args.ignore_pins)
    _emit({
        "recommended": recommendation.recommended.id if recommendation.recommended else None,
        "version": recommendation.recommended.version if recommendation.recommended else None,
        "reason": recommendation.reason,
        "confidence": recommendation.confidence,
        "ranking": [s.model_dump(mode="json") for s in recommendation.ranking],
        "learning": recommendation.learning,
    })
    return 0


def cmd_promote(args: argparse.Namespace) -> int:
    engine = PromotionEngine(ProjectStore(args.output_dir))
    result = engine.promote_version(args.root, args.job, source="cli")
    _emit({"promoted": result.promoted, "reason": result.reason, "jobId": result.job_id})
    return 0 if result.promoted else 1


def cmd_calibrate(args: argparse.Namespace) -> int:
    engine = PromotionEngine(ProjectStore(args.output_dir))
    _emit(engine.calibrate(args.root, apply=args.apply))
    return 0


def cmd_eval_packs(args: argparse.Namespace) -> int:
    report = evaluate_packs(name_filter=args.filter)
    _emit(report)
    logger.info(f"Pack eval accuracy: {report.accuracy}% ({report.passed}/{report.total})")
    return 0 if report.failed == 0 or args.allow_fail else 1


def cmd_eval_autopromote(args: argparse.Namespace) -> int:
    _emit(evaluate_auto_promote(ProjectStore(args.output_dir)))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scriptguard",
        description="Quality guard, auto-improve and version promotion for product promo scripts",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def site_command(name: str, handler, help_text: str, needs_script: bool = True):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--scraped", required=True, help="Scraped site JSON file")
        if needs_script:
            p.add_argument("--script", required=True, help="Script JSON file")
        p.add_argument("--pack", default="auto", help="Domain pack id or 'auto'")
        p.add_argument("--template", default="auto", help="Template id or 'auto'")
        p.set_defaults(handler=handler)
        return p

    def store_command(name: str, handler, help_text: str, needs_root: bool = True):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--output-dir", default=None, help="Output directory (default SCRIPTGUARD_OUTPUT_DIR)")
        if needs_root:
            p.add_argument("--root", required=True, help="Project root output name")
        p.set_defaults(handler=handler)
        return p

    site_command("classify", cmd_classify, "Select a domain pack and template", needs_script=False)

    p = site_command("score", cmd_score, "Score a script")
    p.add_argument("--strict", action="store_true", help="Fail on any warning")

    p = site_command("autofix", cmd_autofix, "Autofix a script")
    p.add_argument("--out", help="Write the fixed script here")

    p = site_command("improve", cmd_improve, "Run the auto-improve loop on a script")
    p.add_argument("--out", help="Write the improved script here")
    p.add_argument("--strict", action="store_true", help="Fail on any warning")
    p.add_argument("--max-steps", type=int, default=None)

    p = store_command("recommend", cmd_recommend, "Recommend a version of a project")
    p.add_argument("--ignore-pins", action="store_true")

    p = store_command("promote", cmd_promote, "Promote a version")
    p.add_argument("--job", required=True, help="Job id of the version")

    p = store_command("calibrate", cmd_calibrate, "Calibrate auto-promote thresholds")
    p.add_argument("--apply", action="store_true", help="Persist the recommended thresholds")

    p = sub.add_parser("eval-packs", help="Evaluate pack classification on labelled fixtures")
    p.add_argument("--filter", default=None, help="Only fixtures whose id contains this")
    p.add_argument("--allow-fail", action="store_true")
    p.set_defaults(handler=cmd_eval_packs)

    store_command("eval-autopromote", cmd_eval_autopromote, "Evaluate auto-promotion decisions", needs_root=False)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    try:
        return args.handler(args)
    except (OSError, ValueError, KeyError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
