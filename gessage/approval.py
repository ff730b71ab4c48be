"""Interactive approval of a proposed commit message.

The loop is a small state machine. transition() is the pure decision
function; ApprovalLoop performs the I/O each state calls for (reading the
user's choice, committing, editing, regenerating) and feeds the outcome
back as an event.

    Proposed --approve--> Committing --ok--> Committed
                                     --error--> Failed
    Proposed --edit--> Editing --text--> Proposed(edited)
                               --error--> Failed
    Proposed --regenerate--> Regenerating --text--> Proposed(regenerated)
                                          --error/blank--> Proposed(unchanged)
    Proposed --cancel--> Cancelled

In no-commit mode approve goes straight to Committed without invoking git.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, ContextManager, Optional, Union

import typer

from gessage.editor import EditorError
from gessage.formatters import CommitMessage
from gessage.git.exceptions import GitError
from gessage.llm.base import GenerationContext, Generator
from gessage.llm.exceptions import LLMError
from gessage.normalize import NormalizeOptions, normalize_message
from gessage.ui import spinner as default_spinner

logger = logging.getLogger(__name__)

REGENERATE_FAILED_NOTICE = "Regenerate failed; keeping existing proposal."
UNKNOWN_CHOICE_NOTICE = "Unknown choice. Type a, e, r or c."


class Choice(Enum):
    """User decisions on a proposed message."""

    APPROVE = "approve"
    EDIT = "edit"
    REGENERATE = "regenerate"
    CANCEL = "cancel"
    UNKNOWN = "unknown"


_CHOICE_TOKENS = {
    "a": Choice.APPROVE,
    "approve": Choice.APPROVE,
    "e": Choice.EDIT,
    "edit": Choice.EDIT,
    "r": Choice.REGENERATE,
    "regenerate": Choice.REGENERATE,
    "c": Choice.CANCEL,
    "cancel": Choice.CANCEL,
}


def parse_choice(token: Optional[str]) -> Choice:
    """Map a typed token to a Choice. Anything unrecognized is UNKNOWN."""
    return _CHOICE_TOKENS.get((token or "").strip().lower(), Choice.UNKNOWN)


# States

@dataclass(frozen=True)
class Proposed:
    message: CommitMessage
    notice: Optional[str] = None


@dataclass(frozen=True)
class Committing:
    message: CommitMessage


@dataclass(frozen=True)
class Editing:
    message: CommitMessage


@dataclass(frozen=True)
class Regenerating:
    message: CommitMessage


@dataclass(frozen=True)
class Committed:
    """Terminal. committed is False when the message was only printed."""

    message: CommitMessage
    committed: bool = True


@dataclass(frozen=True)
class Cancelled:
    message: CommitMessage


@dataclass(frozen=True)
class Failed:
    message: CommitMessage
    error: Exception


State = Union[Proposed, Committing, Editing, Regenerating, Committed, Cancelled, Failed]
TERMINAL_STATES = (Committed, Cancelled, Failed)


def is_terminal(state: State) -> bool:
    return isinstance(state, TERMINAL_STATES)


# Events

@dataclass(frozen=True)
class UserChoice:
    choice: Choice


@dataclass(frozen=True)
class CommitSucceeded:
    pass


@dataclass(frozen=True)
class CommitFailed:
    error: Exception


@dataclass(frozen=True)
class EditCompleted:
    message: CommitMessage


@dataclass(frozen=True)
class EditFailed:
    error: Exception


@dataclass(frozen=True)
class RegenerateCompleted:
    message: CommitMessage


@dataclass(frozen=True)
class RegenerateFailed:
    error: Optional[Exception] = None


Event = Union[
    UserChoice,
    CommitSucceeded,
    CommitFailed,
    EditCompleted,
    EditFailed,
    RegenerateCompleted,
    RegenerateFailed,
]


def transition(state: State, event: Event, no_commit: bool = False) -> State:
    """Compute the next state.

    Pure and total: an event that does not apply to the current state leaves
    it unchanged, and terminal states absorb every event.

    Args:
        state: Current state.
        event: What just happened.
        no_commit: Approve ends the loop without committing.

    Returns:
        The next state.
    """
    if isinstance(state, Proposed) and isinstance(event, UserChoice):
        message = state.message
        if event.choice is Choice.APPROVE:
            return Committed(message, committed=False) if no_commit else Committing(message)
        if event.choice is Choice.EDIT:
            return Editing(message)
        if event.choice is Choice.REGENERATE:
            return Regenerating(message)
        if event.choice is Choice.CANCEL:
            return Cancelled(message)
        return replace(state, notice=UNKNOWN_CHOICE_NOTICE)

    if isinstance(state, Committing):
        if isinstance(event, CommitSucceeded):
            return Committed(state.message)
        if isinstance(event, CommitFailed):
            return Failed(state.message, event.error)

    if isinstance(state, Editing):
        if isinstance(event, EditCompleted):
            return Proposed(event.message)
        if isinstance(event, EditFailed):
            return Failed(state.message, event.error)

    if isinstance(state, Regenerating):
        if isinstance(event, RegenerateCompleted):
            return Proposed(event.message)
        if isinstance(event, RegenerateFailed):
            return Proposed(state.message, notice=REGENERATE_FAILED_NOTICE)

    return state


class ApprovalLoop:
    """Drives the approval state machine against real collaborators.

    Args:
        generator: Backend used for regenerate.
        prompt: The prompt of the first attempt, reused unchanged.
        ctx: Cancellation and timeout shared with the first attempt.
        read_choice: Returns the user's next token.
        edit: Returns the edited text for a message. Raises EditorError.
        commit: Commits a message. Raises GitError (usually CommitError).
        options: Normalization limits for edited and regenerated text.
        max_tokens: Completion budget for regenerate.
        no_commit: Print the approved message instead of committing.
        echo: Output function with typer.echo's signature.
        spinner: Context manager factory shown during regenerate.
    """

    def __init__(
        self,
        generator: Generator,
        prompt: str,
        ctx: GenerationContext,
        read_choice: Callable[[], str],
        edit: Callable[[str], str],
        commit: Callable[[str], None],
        options: Optional[NormalizeOptions] = None,
        max_tokens: int = 512,
        no_commit: bool = False,
        echo: Callable[..., None] = typer.echo,
        spinner: Callable[[str], ContextManager] = default_spinner,
    ):
        self.generator = generator
        self.prompt = prompt
        self.ctx = ctx
        self.read_choice = read_choice
        self.edit = edit
        self.commit = commit
        self.options = options or NormalizeOptions()
        self.max_tokens = max_tokens
        self.no_commit = no_commit
        self.echo = echo
        self.spinner = spinner

    def run(self, message: CommitMessage, notice: Optional[str] = None) -> State:
        """Run the loop until a terminal state.

        Args:
            message: The initial proposal.
            notice: Optional warning shown with the first proposal.

        Returns:
            Committed, Cancelled or Failed.
        """
        state: State = Proposed(message, notice=notice)
        while not is_terminal(state):
            state = self.step(state)

        if isinstance(state, Committed) and not state.committed:
            self.echo(state.message.render())
        return state

    def step(self, state: State) -> State:
        """Perform the I/O for one non-terminal state and transition."""
        if isinstance(state, Proposed):
            return self._propose(state)
        if isinstance(state, Committing):
            return self._commit(state)
        if isinstance(state, Editing):
            return self._edit(state)
        if isinstance(state, Regenerating):
            return self._regenerate(state)
        return state

    def _propose(self, state: Proposed) -> State:
        if state.notice:
            self.echo(state.notice, err=True)
        self.echo("")
        self.echo("Proposed commit message:")
        self.echo("")
        self.echo(state.message.render())
        self.echo("")
        choice = parse_choice(self.read_choice())
        return transition(state, UserChoice(choice), no_commit=self.no_commit)

    def _commit(self, state: Committing) -> State:
        try:
            self.commit(state.message.render())
        except GitError as e:
            return transition(state, CommitFailed(e))
        return transition(state, CommitSucceeded())

    def _edit(self, state: Editing) -> State:
        try:
            text = self.edit(state.message.render())
        except EditorError as e:
            return transition(state, EditFailed(e))
        return transition(state, EditCompleted(normalize_message(text, self.options)))

    def _regenerate(self, state: Regenerating) -> State:
        try:
            with self.spinner("Regenerating"):
                raw = self.generator.generate(self.ctx, self.prompt, self.max_tokens)
        except LLMError as e:
            logger.debug("Regenerate failed: %s", e)
            return transition(state, RegenerateFailed(e))

        if not raw or not raw.strip():
            logger.debug("Regenerate returned blank text")
            return transition(state, RegenerateFailed())
        return transition(state, RegenerateCompleted(normalize_message(raw, self.options)))
