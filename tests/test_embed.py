"""Tests for vnext_sync.embed — script embedding."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from tests._support import SCRIPT_LOCATION, SCRIPT_TEXT, load_json, task_definition, write_json
from vnext_sync.core.errors import ScriptReadError
from vnext_sync.embed import (
    ScriptContent,
    ScriptEncoding,
    dump_json,
    embed_script,
    find_referencing_json,
    script_location,
    update_code_sites,
)


def _script(project: Path) -> Path:
    return project / "core" / "Tasks" / "src" / "CheckLimit.csx"


class TestScriptLocation:
    def test_truncates_at_last_marker(self):
        path = Path("/repo/src/core/Tasks/src/Rules/Check.csx")
        assert script_location(path) == "./src/Rules/Check.csx"

    def test_without_marker_uses_file_name(self):
        assert script_location(Path("/repo/scripts/Check.csx")) == "./Check.csx"

    def test_custom_marker(self):
        assert script_location(Path("/repo/code/Check.csx"), marker="code") == "./code/Check.csx"


class TestScriptContent:
    def test_base64_round_trips_to_original_bytes(self):
        data = SCRIPT_TEXT.encode("utf-8")
        content = ScriptContent.from_bytes(data)
        assert base64.b64decode(content.base64) == data
        assert content.native == SCRIPT_TEXT

    @pytest.mark.parametrize("tag, expected", [("NAT", ScriptEncoding.NATIVE), ("nat", ScriptEncoding.BASE64),
                                               (" NAT ", ScriptEncoding.BASE64), ("B64", ScriptEncoding.BASE64),
                                               (None, ScriptEncoding.BASE64), ("other", ScriptEncoding.BASE64)])
    def test_encoding_tag(self, tag, expected):
        assert ScriptEncoding.from_tag(tag) is expected


class TestUpdateCodeSites:
    def test_updates_every_matching_site(self):
        content = ScriptContent.from_bytes(b"x")
        document = {
            "a": {"location": "./src/A.csx", "code": "old"},
            "list": [
                {"location": "./src/A.csx", "code": "old", "encoding": "NAT"},
                {"nested": {"location": "./src/A.csx", "code": "old"}},
            ],
            "other": {"location": "./src/B.csx", "code": "keep"},
        }
        assert update_code_sites(document, "./src/A.csx", content) == 3
        assert document["a"]["code"] == content.base64
        assert document["list"][0]["code"] == "x"
        assert document["list"][1]["nested"]["code"] == content.base64
        assert document["other"]["code"] == "keep"

    def test_lowercase_nat_tag_gets_base64(self):
        content = ScriptContent.from_bytes(b"return 1;")
        site = {"location": "./src/A.csx", "code": "", "encoding": "nat"}
        assert update_code_sites(site, "./src/A.csx", content) == 1
        assert site["code"] == "cmV0dXJuIDE7"

    def test_site_without_code_key_is_untouched(self):
        document = {"location": "./src/A.csx"}
        assert update_code_sites(document, "./src/A.csx", ScriptContent.from_bytes(b"x")) == 0
        assert "code" not in document


class TestEmbedScript:
    def test_fan_out_across_files(self, project, discovered):
        result = embed_script(_script(project), discovered)

        assert result.success
        assert result.location == SCRIPT_LOCATION
        assert result.updated_json_count == 2
        assert result.total_updates == 3
        counts = {path.name: count for path, count in result.per_file_counts.items()}
        assert counts == {"task-a.json": 1, "flow-a.json": 2}
        assert not result.errors

    def test_native_site_holds_literal_text(self, project, discovered):
        embed_script(_script(project), discovered)
        task = load_json(project / "core" / "Tasks" / "task-a.json")
        assert task["attributes"]["config"]["code"] == SCRIPT_TEXT

    def test_base64_sites_decode_to_script_bytes(self, project, discovered):
        embed_script(_script(project), discovered)
        states = load_json(project / "core" / "Workflows" / "flow-a.json")["attributes"]["states"]
        for code in (states[0]["onEntries"][0]["code"], states[1]["rule"]["code"]):
            assert base64.b64decode(code) == SCRIPT_TEXT.encode("utf-8")
        assert states[2]["rule"]["code"] == "keep"

    def test_excluded_files_are_not_candidates(self, project, discovered):
        result = embed_script(_script(project), discovered)
        names = {path.name for path in result.candidates}
        assert "flow-a.diagram.json" not in names
        assert "ignored.json" not in names

    def test_written_json_is_pretty_printed_with_original_newline(self, project, discovered):
        embed_script(_script(project), discovered)
        text = (project / "core" / "Tasks" / "task-a.json").read_text(encoding="utf-8")
        assert text.endswith("}\n")
        assert '\n  "key": "task-a",' in text
        assert "ü" in text

    def test_unreferenced_script_is_skipped(self, project, discovered):
        script = project / "core" / "Tasks" / "src" / "Unused.csx"
        script.write_text("// unused", encoding="utf-8")
        result = embed_script(script, discovered)
        assert not result.success
        assert result.skipped
        assert result.updated_json_count == 0

    def test_mentioned_but_location_differs(self, project, discovered):
        write_json(
            project / "core" / "Tasks" / "task-b.json",
            task_definition("task-b", note="CheckLimit.csx", site={"location": "./lib/CheckLimit.csx", "code": "x"}),
        )
        result = embed_script(_script(project), discovered)
        assert any(path.name == "task-b.json" for path in result.candidates)
        assert all(path.name != "task-b.json" for path in result.per_file_counts)

    def test_dry_run_leaves_files_untouched(self, project, discovered):
        target = project / "core" / "Tasks" / "task-a.json"
        before = target.read_text(encoding="utf-8")
        result = embed_script(_script(project), discovered, dry_run=True)
        assert result.success
        assert target.read_text(encoding="utf-8") == before

    def test_unparseable_candidate_is_reported(self, project, discovered):
        (project / "core" / "Tasks" / "broken.json").write_text('{"x": "CheckLimit.csx"', encoding="utf-8")
        result = embed_script(_script(project), discovered)
        assert result.success
        assert [path.name for path in result.errors] == ["broken.json"]

    def test_missing_script_raises(self, project, discovered):
        with pytest.raises(ScriptReadError):
            embed_script(project / "core" / "Tasks" / "src" / "Missing.csx", discovered)


class TestHelpers:
    def test_find_referencing_json(self, project, discovered):
        names = sorted(path.name for path in find_referencing_json("CheckLimit.csx", discovered))
        assert names == ["flow-a.json", "task-a.json"]

    def test_dump_json(self):
        assert dump_json({"a": [1]}) == '{\n  "a": [\n    1\n  ]\n}'
        assert dump_json({}, trailing_newline=True) == "{}\n"
