"""Human-in-the-loop acceptance of update candidates.

``InteractiveSelector`` is a small state machine over the ordered candidate
list; ``ConsolePrompter`` asks the questions on a terminal. Cancelling
discards every decision made so far, so a cancelled run writes nothing.

Filtered interactive runs use ``TargetedPrompter`` instead: the user picks one
matching entry, then one of its published versions.
"""

from __future__ import annotations

import logging
import sys
from enum import Enum
from typing import Callable, List, Optional, Sequence, TextIO

from errors import CancelledByUser
from .models import UpdateCandidate, UpdateTarget, VersionChoice
from .version import classify, is_newer, parse

logger = logging.getLogger(__name__)


class SelectorState(Enum):
    """States of the selection state machine."""
    PRESENTING = "presenting"
    AWAITING_DECISION = "awaiting_decision"
    ACCEPTED = "accepted"
    SKIPPED = "skipped"
    ALL_REMAINING_ACCEPTED = "all_remaining_accepted"
    CANCELLED = "cancelled"
    FINISHED = "finished"


class Decision(Enum):
    """Answers a prompter can give for one candidate."""
    ACCEPT = "accept"
    SKIP = "skip"
    ALL = "all"
    QUIT = "quit"


class InteractiveSelector:
    """Walk the candidates one by one and collect the accepted subset."""

    def __init__(self, candidates: Sequence[UpdateCandidate]):
        self.candidates: List[UpdateCandidate] = list(candidates)
        self.index = 0
        self.last_decision: Optional[SelectorState] = None
        self._accepted: List[UpdateCandidate] = []
        self.state = SelectorState.PRESENTING if self.candidates else SelectorState.FINISHED

    @property
    def current(self) -> Optional[UpdateCandidate]:
        if self.state in (SelectorState.PRESENTING, SelectorState.AWAITING_DECISION):
            return self.candidates[self.index]
        return None

    @property
    def is_terminal(self) -> bool:
        return self.state in (SelectorState.FINISHED, SelectorState.CANCELLED)

    def _require(self, *states: SelectorState) -> None:
        if self.state not in states:
            raise RuntimeError(f"Invalid selector transition from state '{self.state.value}'")

    def present(self) -> UpdateCandidate:
        """Show the current candidate and wait for a decision."""
        self._require(SelectorState.PRESENTING)
        self.state = SelectorState.AWAITING_DECISION
        return self.candidates[self.index]

    def _decide(self, outcome: SelectorState) -> None:
        self.last_decision = outcome
        self.index += 1
        if self.index < len(self.candidates):
            self.state = SelectorState.PRESENTING
        else:
            self.state = SelectorState.FINISHED

    def accept(self) -> None:
        self._require(SelectorState.PRESENTING, SelectorState.AWAITING_DECISION)
        self._accepted.append(self.candidates[self.index])
        self._decide(SelectorState.ACCEPTED)

    def skip(self) -> None:
        self._require(SelectorState.PRESENTING, SelectorState.AWAITING_DECISION)
        self._decide(SelectorState.SKIPPED)

    def apply_all(self) -> None:
        """Accept the current and every remaining candidate without prompting."""
        self._require(SelectorState.PRESENTING, SelectorState.AWAITING_DECISION)
        self._accepted.extend(self.candidates[self.index:])
        self.index = len(self.candidates)
        self.last_decision = SelectorState.ALL_REMAINING_ACCEPTED
        self.state = SelectorState.FINISHED

    def cancel(self) -> None:
        """Abort the run; all decisions made so far are discarded."""
        self._require(SelectorState.PRESENTING, SelectorState.AWAITING_DECISION)
        self._accepted = []
        self.last_decision = SelectorState.CANCELLED
        self.state = SelectorState.CANCELLED

    def accepted(self) -> List[UpdateCandidate]:
        """The accepted subset, in candidate order.

        Raises:
            CancelledByUser: the run was cancelled.
        """
        if self.state is SelectorState.CANCELLED:
            raise CancelledByUser()
        self._require(SelectorState.FINISHED)
        return list(self._accepted)


class ConsolePrompter:
    """Ask ``Apply this update? [Y/n/a/q]`` for each candidate."""

    ANSWERS = {
        "": Decision.ACCEPT, "y": Decision.ACCEPT, "yes": Decision.ACCEPT,
        "n": Decision.SKIP, "no": Decision.SKIP,
        "a": Decision.ALL, "all": Decision.ALL,
        "q": Decision.QUIT, "quit": Decision.QUIT,
    }

    def __init__(self, input_fn: Optional[Callable[[str], str]] = None, output: Optional[TextIO] = None):
        self.input_fn = input_fn or input
        self.output = output or sys.stdout

    def __call__(self, candidate: UpdateCandidate) -> Decision:
        marker = "" if candidate.stability.is_stable else " (pre-release)"
        print(
            f"\n[{candidate.entry_kind.value}] {candidate.alias} from "
            f"{candidate.current_version} to {candidate.proposed_version}{marker}",
            file=self.output,
        )
        while True:
            try:
                answer = self.input_fn("Apply this update? [Y/n/a/q]: ")
            except EOFError:
                return Decision.QUIT
            decision = self.ANSWERS.get(answer.strip().lower())
            if decision is not None:
                return decision
            print("Please answer with y(es), n(o), a(ll), or q(uit).", file=self.output)


def run_interactive(
    candidates: Sequence[UpdateCandidate],
    prompter: Callable[[UpdateCandidate], Decision],
) -> List[UpdateCandidate]:
    """Drive an ``InteractiveSelector`` with a prompter.

    Raises:
        CancelledByUser: the user quit.
    """
    selector = InteractiveSelector(candidates)
    while not selector.is_terminal:
        candidate = selector.present()
        decision = prompter(candidate)
        if decision is Decision.ACCEPT:
            selector.accept()
        elif decision is Decision.SKIP:
            selector.skip()
        elif decision is Decision.ALL:
            selector.apply_all()
        else:
            selector.cancel()
    accepted = selector.accepted()
    logger.debug("Accepted %d of %d candidate(s)", len(accepted), len(candidates))
    return accepted


def select_candidates(
    candidates: Sequence[UpdateCandidate],
    interactive: bool = False,
    alias_filter: Optional[str] = None,
    prompter: Optional[Callable[[UpdateCandidate], Decision]] = None,
) -> List[UpdateCandidate]:
    """Choose which candidates to apply.

    Interactive runs go through the state machine. Non-interactive runs with
    an alias filter take only the first candidate; without a filter every
    candidate is accepted.
    """
    if interactive:
        return run_interactive(candidates, prompter or ConsolePrompter())
    if alias_filter:
        return list(candidates[:1])
    return list(candidates)


class TargetedPrompter:
    """Pick one matching entry and then one of its published versions.

    Versions are listed newest first, ``PAGE_SIZE`` at a time; ``m`` shows
    more, ``s`` skips the entry and ``q`` cancels the run.
    """

    PAGE_SIZE = 10

    def __init__(self, input_fn: Optional[Callable[[str], str]] = None, output: Optional[TextIO] = None):
        self.input_fn = input_fn or input
        self.output = output or sys.stdout

    def _ask(self, prompt: str) -> str:
        try:
            return self.input_fn(prompt).strip().lower()
        except EOFError as exc:
            raise CancelledByUser() from exc

    def choose_target(self, targets: Sequence[UpdateTarget]) -> UpdateTarget:
        """Return the entry to update.

        Raises:
            CancelledByUser: the user quit.
        """
        if len(targets) == 1:
            print(f"Found one match: {_describe(targets[0])}", file=self.output)
            return targets[0]
        print(f"Found {len(targets)} matching entries:", file=self.output)
        for idx, target in enumerate(targets, start=1):
            print(f"  {idx:>2}) {_describe(target)}", file=self.output)
        while True:
            answer = self._ask(f"Select entry to update [1-{len(targets)}] (or 'q' to cancel): ")
            if answer == "q":
                raise CancelledByUser()
            if answer.isdigit() and 1 <= int(answer) <= len(targets):
                return targets[int(answer) - 1]
            print("Invalid selection. Please try again.", file=self.output)

    def choose_version(self, target: UpdateTarget, choices: Sequence[VersionChoice]) -> Optional[str]:
        """Return the chosen version, or None when the entry is skipped.

        Only versions strictly newer than the current one are accepted.

        Raises:
            CancelledByUser: the user quit.
        """
        print(f"\nAvailable versions for {target.display_name()}:", file=self.output)
        limit = min(len(choices), self.PAGE_SIZE)
        shown = 0
        while True:
            for idx in range(shown, limit):
                choice = choices[idx]
                print(f"  {idx + 1:>2}) {choice.value} ({', '.join(choice.labels())})", file=self.output)
            shown = limit
            if limit < len(choices):
                print("   m) Show more versions", file=self.output)
            print("   s) Skip update", file=self.output)
            print("   q) Cancel", file=self.output)

            answer = self._ask(f"Select version [1-{limit} | m/s/q]: ")
            if answer == "q":
                raise CancelledByUser()
            if answer == "s":
                return None
            if answer == "m":
                if limit >= len(choices):
                    print("All versions are already displayed.", file=self.output)
                limit = min(limit + self.PAGE_SIZE, len(choices))
                continue
            if not (answer.isdigit() and 1 <= int(answer) <= limit):
                print("Invalid selection. Please try again.", file=self.output)
                continue
            choice = choices[int(answer) - 1]
            if choice.is_current:
                print("Selected version matches the current version; choose another or skip.", file=self.output)
            elif not is_newer(choice.value, target.current):
                print(
                    f"Version {choice.value} is not an upgrade from {target.current_version}.",
                    file=self.output,
                )
            else:
                return choice.value


def _describe(target: UpdateTarget) -> str:
    return f"{target.display_name()}, current version {target.current_version}"


def run_targeted(
    targets: Sequence[UpdateTarget],
    choices_for: Callable[[UpdateTarget], List[VersionChoice]],
    prompter: TargetedPrompter,
) -> List[UpdateCandidate]:
    """Let the user pick one entry and the exact version to move it to.

    Returns:
        A single accepted candidate, or an empty list when nothing matched,
        nothing was published or the entry was skipped.

    Raises:
        CancelledByUser: the user quit.
    """
    if not targets:
        return []
    target = prompter.choose_target(targets)
    choices = choices_for(target)
    if not choices:
        print(f"No versions found for {target.display_name()}.", file=prompter.output)
        return []
    chosen = prompter.choose_version(target, choices)
    if chosen is None:
        return []
    proposed = parse(chosen)
    logger.debug("Targeted update of '%s' to %s", target.alias, chosen)
    return [
        UpdateCandidate(
            alias=target.alias,
            entry_kind=target.entry_kind,
            current=target.current,
            proposed=proposed,
            stability=classify(proposed),
            coordinate=target.coordinate,
        )
    ]
