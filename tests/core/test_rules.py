import pytest

from madcap_toolkit.core.rules import ImageRules, ListHeuristics, PatternTable, PipelineRules


class TestPatternTable:
    def test_invalid_patterns_are_skipped(self):
        table = PatternTable.from_entries([
            {"family": "bad", "pattern": "("},
            {"family": "ok", "pattern": "x"},
        ])
        assert len(table) == 1
        assert table.first_match("xyz").name == "ok"

    def test_first_match_wins(self):
        table = PatternTable.from_entries([
            {"family": "one", "pattern": "a"},
            {"family": "two", "pattern": "ab"},
        ])
        assert table.first_match("ab").name == "one"
        assert table.first_match("zz") is None


class TestConditionTaxonomy:
    @pytest.mark.parametrize("conditions,family", [
        ("Default.Deprecated", "deprecated"),
        ("Default.PrintOnly", "print-only"),
        ("Status.Red", "color-coded"),
        ("Release.Paused", "paused"),
        ("Project.Cancelled", "cancelled"),
        ("Default.Internal", "hidden"),
    ])
    def test_skip_families(self, rules, conditions, family):
        assert rules.conditions.classify(conditions) == family
        assert rules.conditions.should_skip(conditions)

    @pytest.mark.parametrize("conditions", ["Primary.Online", "Default.ScreenOnly", ""])
    def test_kept_conditions(self, rules, conditions):
        assert not rules.conditions.should_skip(conditions)


class TestListHeuristics:
    @pytest.fixture
    def heuristics(self, rules) -> ListHeuristics:
        return rules.lists

    def test_introductory_text(self, heuristics):
        assert heuristics.introduces_list("Select a mode:")
        assert heuristics.introduces_list("Do the following")
        assert not heuristics.introduces_list("Save the file.")
        assert not heuristics.introduces_list("")

    def test_actions(self, heuristics):
        assert heuristics.looks_like_action("Click OK.")
        assert heuristics.looks_like_action("  Go to the Settings page")
        assert not heuristics.looks_like_action("The dialog opens.")

    def test_continuation(self, heuristics):
        assert heuristics.is_continuation("Note: keep a backup.")
        assert heuristics.is_continuation("The Settings dialog is displayed.")
        assert heuristics.is_continuation("see the panel")
        assert heuristics.is_continuation("Anything at all.", classes=["Continuation"])
        assert heuristics.is_continuation("Anything at all.", style={"margin-left": "20px"})

    def test_numbered_text_is_never_continuation(self, heuristics):
        assert not heuristics.is_continuation("2. Open the file")
        assert not heuristics.is_continuation("3) Open the file")

    def test_long_sentence_is_not_continuation(self, heuristics):
        text = "The next chapter explains how reports are generated in detail."
        assert not heuristics.is_continuation(text)


class TestImageRules:
    @pytest.fixture
    def images(self, rules) -> ImageRules:
        return rules.images

    def test_inline_class_marker(self, images):
        assert images.is_inline("/Images/Screens/big.png", ["IconInline"], None, None)

    def test_screenshot_path_and_names(self, images):
        assert not images.is_inline("../Images/Screens/a.png", [], "16", "16")
        assert not images.is_inline("../Images/CreateActivity.png", [], "16", "16")

    def test_ui_icon_path(self, images):
        assert images.is_inline("../Images/GUI/save.png", [], None, None)

    def test_dimensions(self, images):
        assert images.is_inline("a.png", [], "16", "24px")
        assert not images.is_inline("a.png", [], "200", "24")
        assert not images.is_inline("a.png", [], "16", None)


class TestPipelineRules:
    def test_loaded_from_packaged_config(self, rules):
        assert isinstance(rules, PipelineRules)
        assert rules.lists.large_list_item_threshold == 5
        assert rules.lists.processed_marker == "data-list-normalized"
        assert rules.images.max_inline_dimension == 32
        assert len(rules.conditions.table) >= 6
