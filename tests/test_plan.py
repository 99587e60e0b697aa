"""Tests for plan parsing, formatting and the identity chain."""

from __future__ import annotations

from pathlib import Path

import pytest
from rich.console import Console

from quitch.change import Change
from quitch.errors import ParseError, UnknownChangeError, UnsupportedSyntaxError
from quitch.plan import Plan, load_plan

FIRST_ID = "da41a550b0cba5bd3dffbf645032a98ae1136da5"
SECOND_ID = "2959791f9fb4db4c322a9fdf121215d5e8a6a601"


class TestParse:
    def test_example_plan(self, plan_text: str, example_plan: Plan) -> None:
        plan = Plan.parse(plan_text)
        assert plan == example_plan
        assert plan.project == "quitch"
        assert plan.meta == {"syntax-version": "1.0.0", "project": "quitch"}

    def test_roundtrip(self, example_plan: Plan) -> None:
        assert Plan.parse(example_plan.format()) == example_plan

    def test_format(self, example_plan: Plan, plan_text: str) -> None:
        assert example_plan.format() == plan_text

    def test_blank_lines_are_ignored(self, plan_text: str, example_plan: Plan) -> None:
        text = "\n  \n" + plan_text.replace("\n", "\n\n")
        assert Plan.parse(text) == example_plan

    def test_crlf_line_endings(self, plan_text: str, example_plan: Plan) -> None:
        assert Plan.parse(plan_text.replace("\n", "\r\n")) == example_plan

    def test_meta_without_value(self) -> None:
        plan = Plan.parse("%syntax-version=1.0.0\n%uri\n")
        assert plan.meta["uri"] == ""
        assert plan.project == ""

    def test_duplicate_meta_key_last_value_wins(self) -> None:
        plan = Plan.parse("%syntax-version=1.0.0\n%project=a\n%other=x\n%project=b\n")
        assert plan.project == "b"
        assert list(plan.meta) == ["syntax-version", "project", "other"]

    def test_meta_value_may_contain_equals(self) -> None:
        plan = Plan.parse("%syntax-version=1.0.0\n%uri=https://example.com/?a=b\n")
        assert plan.meta["uri"] == "https://example.com/?a=b"

    def test_meta_whitespace_is_kept(self, plan_text: str) -> None:
        plan = Plan.parse(plan_text.replace("%project=quitch\n", "%project=quitch \n"))
        assert plan.project == "quitch "
        first = next(plan.full_changes())
        assert first.id != FIRST_ID
        assert first.id.startswith("3dda4006823b")

    def test_space_after_percent_is_part_of_the_key(self) -> None:
        plan = Plan.parse("%syntax-version=1.0.0\n% project=quitch\n")
        assert plan.project == ""
        assert plan.meta[" project"] == "quitch"

    def test_header_only_plan_is_empty(self) -> None:
        plan = Plan.parse("%syntax-version=1.0.0\n%project=quitch\n")
        assert plan.is_empty()
        assert list(plan.full_changes()) == []

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "%project=quitch\n%syntax-version=1.0.0\n",
            "%syntax-version=2.0.0\n%project=quitch\n",
            "change_name 2024-03-07T03:19:34Z A <a@example.com> # note\n",
        ],
    )
    def test_unsupported_syntax(self, text: str) -> None:
        with pytest.raises(UnsupportedSyntaxError):
            Plan.parse(text)

    def test_malformed_change_line_reports_line_number(self) -> None:
        text = "%syntax-version=1.0.0\n%project=quitch\n\nbroken_line\n"
        with pytest.raises(ParseError) as exc_info:
            Plan.parse(text)
        assert exc_info.value.line_number == 4
        assert str(exc_info.value).startswith("line 4: ")

    def test_first_malformed_line_wins(self) -> None:
        text = "%syntax-version=1.0.0\nfirst_bad\nsecond_bad 2024-03-07 x\n"
        with pytest.raises(ParseError) as exc_info:
            Plan.parse(text)
        assert exc_info.value.line_number == 2


class TestFullChanges:
    """The identity chain built by folding over the changes."""

    def test_chain(self, example_plan: Plan) -> None:
        first, second = example_plan.full_changes()
        assert (first.id, first.parent) == (FIRST_ID, None)
        assert (second.id, second.parent) == (SECOND_ID, FIRST_ID)
        assert second.name == "change_num2"

    def test_each_call_restarts_the_fold(self, example_plan: Plan) -> None:
        assert list(example_plan.full_changes()) == list(example_plan.full_changes())

    def test_reordering_changes_every_identity(self, example_plan: Plan, second_change: Change, example_change: Change) -> None:
        swapped = Plan(project="quitch", changes=(second_change, example_change))
        assert {c.id for c in swapped.full_changes()}.isdisjoint({FIRST_ID, SECOND_ID})

    def test_find_change(self, example_plan: Plan) -> None:
        found = example_plan.find_change("change_num2")
        assert found is not None
        assert found.id == SECOND_ID
        assert example_plan.find_change("missing") is None


class TestShowChange:
    def test_first_change_has_no_parent(self, example_plan: Plan) -> None:
        text = example_plan.show_change("change_name")
        assert "parent " not in text
        assert text.endswith("\n\nA description of the change")

    def test_second_change_names_its_parent(self, example_plan: Plan) -> None:
        assert example_plan.show_change("change_num2") == (
            "project quitch\n"
            "change change_num2\n"
            f"parent {FIRST_ID}\n"
            "planner Ruslan Fadeev <github@kinrany.dev>\n"
            "date 2024-03-10T00:04:24Z\n"
            "\n"
            "Second change"
        )

    def test_unknown_change(self, example_plan: Plan) -> None:
        with pytest.raises(UnknownChangeError, match="missing"):
            example_plan.show_change("missing")


class TestLoadPlan:
    def test_load(self, project_dir: Path, example_plan: Plan, console: Console, console_output) -> None:
        plan = load_plan(project_dir / "sqitch.plan", console)
        assert plan == example_plan
        assert "Using plan file" in console_output.getvalue()
        assert "empty" not in console_output.getvalue()

    def test_empty_plan_warns(self, tmp_path: Path, console: Console, console_output) -> None:
        path = tmp_path / "sqitch.plan"
        path.write_text("%syntax-version=1.0.0\n%project=quitch\n", encoding="utf-8")
        assert load_plan(path, console).is_empty()
        assert "Warning: the plan is empty" in console_output.getvalue()

    def test_missing_file(self, tmp_path: Path, console: Console) -> None:
        with pytest.raises(FileNotFoundError):
            load_plan(tmp_path / "missing.plan", console)
