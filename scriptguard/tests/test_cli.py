"""
Tests for the command line entrypoint.
"""
import json

import pytest

from scriptguard.cli import main
from scriptguard.pipeline.script_io import to_persisted_script


class TestCli:
    """Test exit codes and JSON output of each command."""

    @pytest.fixture
    def files(self, tmp_path, saas_scraped, good_script, broken_script):
        paths = {
            "scraped": tmp_path / "site.json",
            "good": tmp_path / "good.json",
            "broken": tmp_path / "broken.json",
        }
        paths["scraped"].write_text(json.dumps(saas_scraped.model_dump(mode="json", by_alias=True)), encoding="utf-8")
        paths["good"].write_text(json.dumps(to_persisted_script(good_script)), encoding="utf-8")
        paths["broken"].write_text(json.dumps(to_persisted_script(broken_script)), encoding="utf-8")
        return {key: str(path) for key, path in paths.items()}

    def test_classify(self, files, capsys):
        assert main(["classify", "--scraped", files["scraped"]]) == 0

        out = json.loads(capsys.readouterr().out)
        assert out["pack"] == "b2b-saas"
        assert out["template"] == "yc-saas"

    def test_score_exit_codes(self, files, capsys):
        assert main(["score", "--scraped", files["scraped"], "--script", files["good"]]) == 0
        assert json.loads(capsys.readouterr().out)["score"] == 100

        assert main(["score", "--scraped", files["scraped"], "--script", files["broken"]]) == 1

    def test_autofix_writes_output(self, files, tmp_path, capsys):
        out_path = tmp_path / "fixed.json"

        main(["autofix", "--scraped", files["scraped"], "--script", files["broken"], "--out", str(out_path)])

        fixed = json.loads(out_path.read_text(encoding="utf-8"))
        assert len(fixed["features"]) == 3
        assert json.loads(capsys.readouterr().out)["actions"]

    def test_improve(self, files, capsys):
        code = main(["improve", "--scraped", files["scraped"], "--script", files["good"], "--max-steps", "2"])

        assert code == 0
        assert json.loads(capsys.readouterr().out)["stopReason"] == "already-meets-target"

    def test_recommend_empty_root(self, tmp_path, capsys):
        code = main(["recommend", "--output-dir", str(tmp_path / "out"), "--root", "acme-io"])

        assert code == 0
        out = json.loads(capsys.readouterr().out)
        assert out["recommended"] is None
        assert out["reason"] == "No eligible versions"

    def test_promote_missing_version(self, tmp_path, capsys):
        code = main(["promote", "--output-dir", str(tmp_path / "out"), "--root", "acme-io", "--job", "nope"])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["reason"] == "version-not-found"

    def test_eval_packs_filter(self, capsys):
        assert main(["eval-packs", "--filter", "gaming"]) == 0
        assert json.loads(capsys.readouterr().out)["total"] == 1

    def test_eval_autopromote(self, tmp_path, capsys):
        assert main(["eval-autopromote", "--output-dir", str(tmp_path / "out")]) == 0
        assert json.loads(capsys.readouterr().out)["total_roots"] == 0

    def test_missing_file_exit_code(self, tmp_path):
        assert main(["classify", "--scraped", str(tmp_path / "missing.json")]) == 2

    def test_unknown_pack_exit_code(self, files):
        assert main(["classify", "--scraped", files["scraped"], "--pack", "crypto"]) == 2
