#!/usr/bin/env python3
"""
End-to-end tests for the combine_rules command line (dry-run and full mode).
The Claude API is mocked.
"""
import json
from unittest.mock import Mock, patch

import pytest

import combine_rules

RULES = {
    "format.md": "---\ntrigger: glob\ndescription: Formatting\nglobs: *.ts\n---\n\nuse two spaces for indentation in typescript",
    "nested/format.mdc": "---\ndescription: Formatting\nglobs: *.ts\nalwaysApply: false\n---\nuse two spaces for indentation in typescript",
    "testing.mdc": "---\ndescription: Testing\nalwaysApply: true\n---\nwrite unit tests",
    "loose.md": "no metadata block here",
}


@pytest.fixture
def project(tmp_path, monkeypatch):
    rules_dir = tmp_path / ".windsurf" / "rules"
    for rel, text in RULES.items():
        path = rules_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("CLAUDE_API_KEY", "placeholder")
    monkeypatch.delenv("CLAUDE_API_KEY")
    return tmp_path


def _claude_reply(payload):
    resp = Mock()
    resp.ok = True
    resp.status_code = 200
    resp.json.return_value = {"content": [{"type": "text", "text": json.dumps(payload)}]}
    return resp


class TestDryRun:

    def test_text_report(self, project, capsys):
        with patch("helpers.call_claude.requests.post") as post:
            assert combine_rules.main(["--dry-run"]) == 0
        post.assert_not_called()

        out = capsys.readouterr().out
        assert "Found 2 .md files and 2 .mdc files" in out
        assert "Total rules: 4" in out
        assert "Windsurf (.md): 2" in out
        assert "Cursor (.mdc): 2" in out
        assert "format.md & format.mdc" in out
        assert 'Description: "Formatting"' in out
        assert "Similarity: 100.0%" in out
        assert 'Glob: "*.ts"' in out
        assert "Different triggers: glob vs None" in out
        assert "loose.md (windsurf)" in out
        assert "Dry run complete!" in out

    def test_json_report(self, project, capsys):
        assert combine_rules.main(["-d", "--json"]) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["totalRules"] == 4
        assert data["byFormat"] == {"windsurf": 2, "cursor": 2}
        assert data["byTriggerType"] == {"unknown": 1, "glob": 1, "false": 1, "true": 1}
        assert [d["reason"] for d in data["duplicates"]] == ["Same description", "Similar content"]
        assert data["conflicts"] == [
            {"files": ["format.md", "format.mdc"], "glob": "*.ts", "triggers": ["glob", None]},
        ]

    def test_no_rules(self, tmp_path, capsys):
        assert combine_rules.main(["--dry-run", "--base-dir", str(tmp_path)]) == 0
        assert "No rules found to combine" in capsys.readouterr().out


class TestFullMode:

    def test_missing_api_key(self, project, capsys):
        with patch("helpers.call_claude.requests.post") as post:
            assert combine_rules.main([]) == 1
        post.assert_not_called()
        assert "CLAUDE_API_KEY not found" in capsys.readouterr().err
        assert not (project / ".windsurf" / "combined-rules").exists()

    def test_writes_combined_rules(self, project, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "sk-test")
        reply = {
            "analysis": "Merged formatting rules.",
            "suggestedFormat": "md",
            "combinedRules": [
                {"filename": "formatting.md", "metadata": {"trigger": "glob", "globs": "*.ts"}, "content": "Two spaces."},
                {"filename": "testing.md", "metadata": {"trigger": "always_on"}, "content": "Write tests."},
            ],
        }
        with patch("helpers.call_claude.requests.post", return_value=_claude_reply(reply)) as post:
            assert combine_rules.main([]) == 0

        prompt = post.call_args.kwargs["json"]["messages"][0]["content"]
        assert "File: loose.md" in prompt

        out_dir = project / ".windsurf" / "combined-rules"
        assert (out_dir / "analysis.md").read_text(encoding="utf-8").endswith("Suggested Format: md")
        assert (out_dir / "formatting.md").read_text(encoding="utf-8") == (
            "---\ntrigger: glob\nglobs: *.ts\n---\n\nTwo spaces."
        )
        assert (out_dir / "testing.md").exists()

    def test_unparsable_reply_writes_nothing(self, project, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "sk-test")
        resp = Mock(ok=True, status_code=200)
        resp.json.return_value = {"content": [{"type": "text", "text": "Sorry, I cannot help with that."}]}
        out_dir = project / "out"
        with patch("helpers.call_claude.requests.post", return_value=resp):
            assert combine_rules.main(["--output-dir", str(out_dir)]) == 1
        assert not out_dir.exists()

    def test_api_failure_exit_code(self, project, monkeypatch):
        monkeypatch.setenv("CLAUDE_API_KEY", "sk-test")
        resp = Mock(ok=False, status_code=500, text="overloaded")
        with patch("helpers.call_claude.requests.post", return_value=resp):
            assert combine_rules.main([]) == 1


class TestArguments:

    def test_json_requires_dry_run(self, project, capsys):
        with patch("helpers.call_claude.requests.post") as post:
            with pytest.raises(SystemExit) as exc:
                combine_rules.main(["--json"])
        assert exc.value.code == 2
        assert "--json requires --dry-run" in capsys.readouterr().err
        post.assert_not_called()

    def test_ctrl_c_exits_130(self, project):
        with patch("combine_rules.analyze_rules", side_effect=KeyboardInterrupt):
            assert combine_rules.main(["--dry-run"]) == 130
