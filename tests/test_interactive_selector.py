"""Tests for interactive acceptance of update candidates."""
import io
from unittest.mock import MagicMock

import pytest

from catalog.model import Catalog
from catalog.mutator import apply_accepted
from errors import CancelledByUser
from versioning.models import Coordinate, EntryKind, UpdateCandidate, UpdateTarget, VersionChoice
from versioning.selector import (
    ConsolePrompter,
    Decision,
    InteractiveSelector,
    SelectorState,
    TargetedPrompter,
    run_interactive,
    run_targeted,
    select_candidates,
)
from versioning.version import classify, parse


CATALOG = '''[versions]
a = "1.0.0"
b = "1.0.0"
c = "1.0.0"
d = "1.0.0"
e = "1.0.0"
'''


def _candidates():
    return [
        UpdateCandidate(alias, EntryKind.VERSION_REF, parse("1.0.0"), parse("1.1.0"), classify("1.1.0"))
        for alias in "abcde"
    ]


def _scripted(*decisions):
    return MagicMock(side_effect=list(decisions))


class TestInteractiveSelector:
    """Test the selection state machine."""

    def test_initial_state(self):
        """Selection starts by presenting the first candidate."""
        candidates = _candidates()
        selector = InteractiveSelector(candidates)
        assert selector.state is SelectorState.PRESENTING
        assert selector.present() is candidates[0]
        assert selector.state is SelectorState.AWAITING_DECISION

    def test_empty_finishes_immediately(self):
        """No candidates means nothing to ask."""
        selector = InteractiveSelector([])
        assert selector.state is SelectorState.FINISHED
        assert selector.accepted() == []

    def test_accept_and_skip(self):
        """Accepted candidates are kept in order."""
        candidates = _candidates()
        selector = InteractiveSelector(candidates)
        for accept in (True, False, True, False, False):
            selector.present()
            if accept:
                selector.accept()
            else:
                selector.skip()
        assert selector.state is SelectorState.FINISHED
        assert selector.last_decision is SelectorState.SKIPPED
        assert [c.alias for c in selector.accepted()] == ["a", "c"]

    def test_apply_all(self):
        """Apply-all accepts the current and all remaining candidates."""
        selector = InteractiveSelector(_candidates())
        selector.present()
        selector.skip()
        selector.present()
        selector.apply_all()
        assert selector.state is SelectorState.FINISHED
        assert selector.last_decision is SelectorState.ALL_REMAINING_ACCEPTED
        assert [c.alias for c in selector.accepted()] == ["b", "c", "d", "e"]

    def test_cancel_discards_decisions(self):
        """Cancelling after accepting some candidates keeps nothing."""
        selector = InteractiveSelector(_candidates())
        for _ in range(2):
            selector.present()
            selector.accept()
        selector.present()
        selector.cancel()
        assert selector.state is SelectorState.CANCELLED
        assert selector.is_terminal
        with pytest.raises(CancelledByUser):
            selector.accepted()

    def test_invalid_transitions(self):
        """Decisions after the end are rejected."""
        selector = InteractiveSelector(_candidates()[:1])
        selector.present()
        selector.accept()
        with pytest.raises(RuntimeError):
            selector.accept()
        with pytest.raises(RuntimeError):
            selector.present()

    def test_accepted_requires_finished(self):
        """The accepted subset is only available at the end."""
        selector = InteractiveSelector(_candidates())
        with pytest.raises(RuntimeError):
            selector.accepted()


class TestRunInteractive:
    """Test driving the selector with a prompter."""

    def test_accept_two_then_cancel_writes_nothing(self):
        """Accept 2 of 5, then quit: zero mutations reach the catalog."""
        catalog = Catalog.from_text(CATALOG)
        prompter = _scripted(Decision.ACCEPT, Decision.ACCEPT, Decision.QUIT)
        with pytest.raises(CancelledByUser):
            accepted = run_interactive(_candidates(), prompter)
            apply_accepted(catalog, accepted)
        assert prompter.call_count == 3
        assert catalog.render() == CATALOG

    def test_mixed_decisions(self):
        """Skip, accept, then all."""
        prompter = _scripted(Decision.SKIP, Decision.ACCEPT, Decision.ALL)
        accepted = run_interactive(_candidates(), prompter)
        assert [c.alias for c in accepted] == ["b", "c", "d", "e"]
        assert prompter.call_count == 3

    def test_select_candidates_non_interactive(self):
        """Without prompting every candidate is taken, or only the first with a filter."""
        candidates = _candidates()
        assert select_candidates(candidates) == candidates
        assert select_candidates(candidates, alias_filter="*a*") == candidates[:1]
        assert select_candidates([], alias_filter="*a*") == []

    def test_select_candidates_interactive(self):
        """Interactive selection uses the given prompter."""
        prompter = _scripted(*([Decision.SKIP] * 5))
        assert select_candidates(_candidates(), interactive=True, prompter=prompter) == []


class TestConsolePrompter:
    """Test terminal answers."""

    @pytest.mark.parametrize("answer,decision", [
        ("", Decision.ACCEPT),
        ("y", Decision.ACCEPT),
        ("YES", Decision.ACCEPT),
        ("n", Decision.SKIP),
        ("a", Decision.ALL),
        ("q", Decision.QUIT),
        (" quit ", Decision.QUIT),
    ])
    def test_answers(self, answer, decision):
        """Answers map to decisions case-insensitively."""
        out = io.StringIO()
        prompter = ConsolePrompter(input_fn=lambda _prompt: answer, output=out)
        assert prompter(_candidates()[0]) is decision
        assert "a from 1.0.0 to 1.1.0" in out.getvalue()

    def test_reprompts_on_unknown_answer(self):
        """Unknown answers ask again."""
        out = io.StringIO()
        answers = iter(["maybe", "n"])
        prompter = ConsolePrompter(input_fn=lambda _prompt: next(answers), output=out)
        assert prompter(_candidates()[0]) is Decision.SKIP
        assert "Please answer" in out.getvalue()

    def test_eof_quits(self):
        """End of input cancels."""
        def _eof(_prompt):
            raise EOFError

        prompter = ConsolePrompter(input_fn=_eof, output=io.StringIO())
        assert prompter(_candidates()[0]) is Decision.QUIT

    def test_pre_release_marker(self):
        """Unstable proposals are flagged."""
        out = io.StringIO()
        candidate = UpdateCandidate(
            "a", EntryKind.LIBRARY, parse("1.0.0"), parse("2.0.0-beta1"), classify("2.0.0-beta1")
        )
        ConsolePrompter(input_fn=lambda _prompt: "n", output=out)(candidate)
        assert "(pre-release)" in out.getvalue()


def _targets():
    return [
        UpdateTarget("okhttp", EntryKind.LIBRARY, parse("4.11.0"),
                     Coordinate.library("com.squareup.okhttp3", "okhttp")),
        UpdateTarget("okio", EntryKind.VERSION_REF, parse("3.5.0"),
                     Coordinate.library("com.squareup.okio", "okio")),
    ]


def _choices(current, *values):
    return [VersionChoice(v, classify(v).is_stable, v == current) for v in values]


class TestTargetedPrompter:
    """Test picking one entry and one version."""

    def test_choose_target(self):
        """The user picks by number; bad input re-prompts."""
        out = io.StringIO()
        prompter = TargetedPrompter(input_fn=_scripted("9", "2"), output=out)
        assert prompter.choose_target(_targets()).alias == "okio"
        text = out.getvalue()
        assert "Found 2 matching entries:" in text
        assert "1) library 'okhttp' (com.squareup.okhttp3:okhttp), current version 4.11.0" in text
        assert "Invalid selection" in text

    def test_single_target_needs_no_prompt(self):
        """One match is taken without asking."""
        ask = _scripted()
        target = TargetedPrompter(input_fn=ask, output=io.StringIO()).choose_target(_targets()[:1])
        assert target.alias == "okhttp"
        ask.assert_not_called()

    def test_choose_version_rejects_current_and_older(self):
        """Only strictly newer versions are accepted."""
        out = io.StringIO()
        choices = _choices("4.11.0", "4.12.0", "4.11.0", "4.10.0")
        prompter = TargetedPrompter(input_fn=_scripted("2", "3", "1"), output=out)
        assert prompter.choose_version(_targets()[0], choices) == "4.12.0"
        text = out.getvalue()
        assert "2) 4.11.0 (stable, current)" in text
        assert "matches the current version" in text
        assert "Version 4.10.0 is not an upgrade from 4.11.0." in text

    def test_show_more(self):
        """Versions are paged; 'm' reveals the next page."""
        values = [f"5.{n}.0" for n in range(12, 0, -1)]
        out = io.StringIO()
        prompter = TargetedPrompter(input_fn=_scripted("11", "m", "11"), output=out)
        assert prompter.choose_version(_targets()[0], _choices("4.11.0", *values)) == "5.2.0"
        text = out.getvalue()
        assert text.count("m) Show more versions") == 2
        assert "12) 5.1.0 (stable)" in text

    def test_skip_and_quit(self):
        """'s' skips the entry, 'q' and end of input cancel."""
        choices = _choices("4.11.0", "4.12.0")
        target = _targets()[0]
        assert TargetedPrompter(input_fn=_scripted("s"), output=io.StringIO()).choose_version(target, choices) is None
        with pytest.raises(CancelledByUser):
            TargetedPrompter(input_fn=_scripted("q"), output=io.StringIO()).choose_version(target, choices)
        with pytest.raises(CancelledByUser):
            TargetedPrompter(input_fn=_scripted(EOFError()), output=io.StringIO()).choose_target(_targets())


class TestRunTargeted:
    """Test the filtered interactive flow."""

    def test_chosen_version_becomes_candidate(self):
        """The picked version is applied through the entry's slot."""
        catalog = Catalog.from_text(CATALOG)
        target = UpdateTarget("c", EntryKind.VERSION_REF, parse("1.0.0"), Coordinate.library("g", "c"))
        prompter = TargetedPrompter(input_fn=_scripted("2"), output=io.StringIO())
        accepted = run_targeted(
            [target], lambda t: _choices("1.0.0", "2.0.0-rc1", "1.5.0", "1.0.0"), prompter
        )
        assert [(c.alias, c.proposed_version, c.stability.is_stable) for c in accepted] == [("c", "1.5.0", True)]
        apply_accepted(catalog, accepted)
        assert catalog.render() == CATALOG.replace('c = "1.0.0"', 'c = "1.5.0"')

    def test_nothing_to_choose(self):
        """No targets or no published versions yield no candidates."""
        out = io.StringIO()
        prompter = TargetedPrompter(input_fn=_scripted(), output=out)
        assert run_targeted([], lambda t: [], prompter) == []
        assert run_targeted(_targets()[:1], lambda t: [], prompter) == []
        assert "No versions found for library 'okhttp'" in out.getvalue()
