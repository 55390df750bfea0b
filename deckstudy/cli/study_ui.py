"""
Command-line interface for studying a deck.
"""

import logging
import time
from typing import Callable

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from deckstudy.constants import EXIT_COMMAND, PAUSE_COMMAND, RESUME_COMMAND
from deckstudy.evaluator import is_blank
from deckstudy.models import DeckWithCards
from deckstudy.scoring import FeedbackTier, SessionResult
from deckstudy.session_state import CardFace, SessionState, SessionStatus
from deckstudy.study_session import StudySession
from deckstudy.timer import format_elapsed

logger = logging.getLogger(__name__)
console = Console()

Sleeper = Callable[[float], None]

_TIER_STYLES = {
    FeedbackTier.Mastered: "bold green",
    FeedbackTier.Good: "bold yellow",
    FeedbackTier.NeedsReview: "bold orange3",
}


def show_empty_deck_prompt(deck: DeckWithCards) -> None:
    """Shown instead of a session when the deck has no cards."""
    console.print(
        Panel(
            "You need to add some flashcards before you can start studying.\n"
            f"Add one with: [cyan]deckstudy card add {deck.id} "
            '--front "..." --back "..."[/cyan]',
            title=f"Study: {deck.name}",
            subtitle="This deck has no cards to study",
            border_style="yellow",
        )
    )


def _show_setup(state: SessionState) -> None:
    body = (
        f"[bold]{state.total_cards}[/bold] cards to study, in random order.\n"
        "One point for each correct answer.\n\n"
        "Type your answer and press Enter to validate it.\n"
        f"Type [cyan]{PAUSE_COMMAND}[/cyan] to take a break and "
        f"[cyan]{EXIT_COMMAND}[/cyan] to leave the session."
    )
    if state.deck.description:
        body = f"[italic]{state.deck.description}[/italic]\n\n{body}"
    console.print(
        Panel(
            body,
            title=f"Study: {state.deck.name}",
            subtitle="Ready to Study?",
            border_style="magenta",
        )
    )


def _show_header(state: SessionState) -> None:
    console.rule(
        f"[bold]{state.deck.name}[/bold]  "
        f"{format_elapsed(state.elapsed_seconds)}  "
        f"Card {state.cursor + 1} of {len(state.sequence)}  "
        f"Score: {state.correct_count}/{state.answered_count}"
    )


def _show_front(state: SessionState) -> None:
    card = state.current_card
    console.print(Panel(card.front, title="Question", border_style="magenta"))


def _show_feedback(answered: SessionState) -> None:
    card = answered.current_card
    if answered.last_answer_correct:
        verdict, style = "Correct!", "green"
    else:
        verdict, style = "Incorrect", "red"
    console.print(
        Panel(
            f"{card.back}\n\n[bold {style}]{verdict}[/bold {style}]",
            title="Answer",
            border_style=style,
        )
    )


def _show_result(result: SessionResult) -> None:
    table = Table(title="Study Session Complete!", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Final Score", result.score_text)
    table.add_row("Accuracy", f"{result.accuracy_percent}%")
    table.add_row("Time Taken", result.elapsed_text)
    console.print(table)
    style = _TIER_STYLES[result.tier]
    console.print(f"[{style}]{result.tier.message}[/{style}]")


def _confirm_exit(session: StudySession) -> None:
    session.request_exit()
    confirmed = typer.confirm(
        "Exit study session? Your current progress will be lost."
    )
    if confirmed:
        session.confirm_exit()
        console.print("[yellow]Study session exited.[/yellow]")
    else:
        session.cancel_exit()


def _wait_for_feedback(
    session: StudySession, answered: SessionState, sleep: Sleeper
) -> None:
    """
    Block until the card has flipped (then show it) and the session has
    moved past the answered card.
    """
    shown = False
    while True:
        state = session.poll()
        moved_on = (
            state.status is not SessionStatus.Active
            or state.attempt != answered.attempt
            or state.cursor != answered.cursor
        )
        if not shown and (moved_on or state.face is CardFace.Back):
            _show_feedback(answered)
            shown = True
        if moved_on:
            return
        deadline = session.scheduler.next_deadline()
        if deadline is None:
            logger.warning("No pending feedback action; resuming input.")
            return
        sleep(max(0.0, deadline - session.scheduler.now()))


def _handle_paused(session: StudySession) -> None:
    console.print(
        Panel(
            "Take your time! Press Enter when you're ready to continue.",
            title="Study Session Paused",
            border_style="yellow",
        )
    )
    command = console.input(
        f"[italic]Enter or {RESUME_COMMAND} to resume, "
        f"{EXIT_COMMAND} to leave: [/italic]"
    ).strip().lower()
    if command == EXIT_COMMAND:
        _confirm_exit(session)
    else:
        session.resume()


def _play_attempt(session: StudySession, sleep: Sleeper) -> SessionState:
    """Run one attempt until it completes or is exited."""
    while True:
        state = session.poll()
        if state.status in (SessionStatus.Completed, SessionStatus.Setup):
            return state
        if state.status is SessionStatus.Paused:
            _handle_paused(session)
            continue

        _show_header(state)
        _show_front(state)
        text = console.input("[bold]Your answer: [/bold]")
        command = text.strip().lower()
        if command == PAUSE_COMMAND:
            session.pause()
            continue
        if command == EXIT_COMMAND:
            _confirm_exit(session)
            continue
        if is_blank(text):
            console.print(
                "[yellow]Type an answer before validating it.[/yellow]"
            )
            continue

        session.type_answer(text)
        answered = session.submit()
        if answered.answered_count == state.answered_count:
            # The submission was not accepted (e.g. paused by a late poll).
            continue
        _wait_for_feedback(session, answered, sleep)


def start_study_flow(session: StudySession, sleep: Sleeper = time.sleep) -> None:
    """
    Manages the command-line study flow: setup screen, attempts, results and
    "study again". The session is closed when the flow ends.

    Args:
        session: A freshly opened StudySession.
        sleep: Used to wait for the flip and auto-advance delays.
    """
    try:
        while True:
            _show_setup(session.state)
            choice = console.input(
                "[italic]Press Enter to start, or type q to leave...[/italic]"
            )
            if choice.strip().lower() in ("q", "quit"):
                break

            session.start()
            state = _play_attempt(session, sleep)
            if state.status is SessionStatus.Setup:
                continue

            _show_result(session.result)
            again = console.input("[bold]Study again? (y/N): [/bold]")
            if again.strip().lower() not in ("y", "yes"):
                break
            session.study_again()
    finally:
        session.close()

    console.print("[bold cyan]Study session finished.[/bold cyan]")
