"""CLI interface for the Exam Coach System."""
import asyncio
import sys
from typing import Awaitable, Optional, TypeVar

import click
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from .agents.assistant_agent import AssistantAgent
from .agents.exam_controller import ExamController
from .agents.examiner_agent import START_MARKER
from .models.enums import ExamState, TurnRole
from .models.exam import ExamSnapshot
from .services.configuration_manager import ConfigurationManager
from .services.llm_manager import LLMProviderManager
from .utils.exceptions import ExamCoachError
from .utils.logging import get_logger, setup_logging
from .utils.text import clean_for_speech

T = TypeVar("T")

console = Console()
logger = get_logger("cli")

QUIT_WORDS = {"quit", "exit"}
LOADING_POLL_SECONDS = 0.25

THINKING_MESSAGES = [
    "🤖 The examiner is reading your answer...",
    "🧠 Grading and picking the next question...",
    "⚡ Adjusting the difficulty to your level...",
]

ANALYZING_MESSAGES = [
    "🔮 Consulting the Coach...",
    "🕵️ Analyzing your collaboration strategy...",
    "📝 Writing your improvement plan...",
]


@click.group()
@click.version_option(version="0.1.0")
@click.option("--config", "-c", type=click.Path(), default="config", help="Configuration directory")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, config: str, verbose: bool):
    """Exam Coach - adaptive team exams with an AI examiner and coach."""
    ctx.ensure_object(dict)

    # Quiet until the configured level is known
    setup_logging("DEBUG" if verbose else "ERROR")

    try:
        config_manager = ConfigurationManager(config)
        config_manager.initialize()
        logging_config = config_manager.get_logging_config()
        setup_logging(
            "DEBUG" if verbose else logging_config.level,
            log_file=logging_config.file_path if logging_config.file_output else None,
            structured=logging_config.format == "json",
            enable_console=logging_config.console_output,
            max_file_size=logging_config.max_file_size,
            backup_count=logging_config.backup_count,
        )
        ctx.obj["config_manager"] = config_manager

        llm_manager = LLMProviderManager(config_manager)
        llm_manager.initialize()
        ctx.obj["llm_manager"] = llm_manager
        logger.info("CLI initialized successfully")

    except ExamCoachError as e:
        console.print(f"[red]Failed to initialize system: {escape(e.message)}[/red]")
        logger.error(f"CLI initialization failed: {e}")
        sys.exit(1)


@cli.command()
@click.option("--subject", "-s", default=None, help="Exam subject (defaults to the configured one)")
@click.option("--max-questions", "-n", type=click.IntRange(min=1), default=None, help="Answers before the exam ends")
@click.pass_context
def start_exam(ctx: click.Context, subject: Optional[str], max_questions: Optional[int]):
    """Start an adaptive team exam."""
    llm_manager: LLMProviderManager = ctx.obj["llm_manager"]
    exam_config = ctx.obj["config_manager"].get_exam_config()

    if not llm_manager.providers:
        console.print("[red]No LLM provider configured. Set GEMINI_API_KEY and enable a provider in providers.yaml.[/red]")
        sys.exit(1)

    controller = ExamController.from_llm_manager(
        llm_manager,
        subject=subject or exam_config.subject,
        max_questions=max_questions or exam_config.max_questions,
    )

    console.clear()
    console.print(Panel(
        "\n".join([
            "🧠 The Hybrid Examiner",
            f"Subject: {escape(controller.examiner.subject)}",
            f"Questions: up to {controller.max_questions}",
            "",
            "The examiner tests your knowledge; the coach analyzes how your team works together.",
        ]),
        title="Team Exam",
        border_style="cyan",
    ))

    try:
        asyncio.run(_run_exam(controller, llm_manager))
    except KeyboardInterrupt:
        console.print("\n[yellow]Exam interrupted.[/yellow]")


@cli.command()
@click.argument("task")
@click.option("--plain", is_flag=True, help="Print speech-ready text instead of rendered markdown")
@click.pass_context
def ask(ctx: click.Context, task: str, plain: bool):
    """Send a single task to the assistant."""
    agent = AssistantAgent(ctx.obj["llm_manager"])
    answer = asyncio.run(_with_cleanup(agent.ask(task), ctx.obj["llm_manager"]))

    if answer is None:
        console.print("[yellow]Nothing to ask.[/yellow]")
        return

    if plain:
        click.echo(clean_for_speech(answer))
    else:
        console.print(Panel(Markdown(answer), title="Agent", border_style="blue"))


@cli.command()
@click.pass_context
def list_models(ctx: click.Context):
    """List the models that can generate content."""
    console.print("Checking available models...")
    try:
        models = ctx.obj["llm_manager"].list_models()
    except ExamCoachError as e:
        console.print(f"[red]❌ {escape(e.message)}[/red]")
        sys.exit(1)

    console.print("[green]✅ SUCCESS! Found these models:[/green]")
    for name in models:
        console.print(Text(f"  {name}"))


@cli.command()
@click.pass_context
def help(ctx: click.Context):
    """Show detailed help information."""
    help_text = """
    [bold blue]Exam Coach[/bold blue]

    An adaptive examiner asks questions, grades each answer and makes the
    next question harder or simpler. When the exam ends, a coach model
    analyzes how the team worked together.

    [bold]Commands:[/bold]
    • start-exam: Run an interactive team exam
    • ask: Send a single task to the assistant
    • list-models: Show the models available to your API key
    • help: Show this help message

    [bold]Example Usage:[/bold]
    exam-coach start-exam --subject "Python" --max-questions 5
    """

    console.print(Panel(help_text, title="Help", border_style="blue"))


async def _with_cleanup(awaitable: Awaitable[T], llm_manager: LLMProviderManager) -> T:
    try:
        return await awaitable
    finally:
        await llm_manager.cleanup()


async def _run_exam(controller: ExamController, llm_manager: LLMProviderManager) -> None:
    """Drive the controller until the team quits."""
    try:
        await _submit_with_loading(controller, START_MARKER)

        while True:
            snapshot = controller.snapshot()

            if snapshot.state == ExamState.IDLE:
                console.print(Panel(Text(snapshot.feedback or "The exam did not start."), title="Error", border_style="red"))
                if not click.confirm("Try starting again?", default=True):
                    return
                await _submit_with_loading(controller, START_MARKER)

            elif snapshot.state == ExamState.ACTIVE:
                _render_active(snapshot)
                answer = _get_team_answer()
                if answer is None:
                    return
                await _submit_with_loading(controller, answer)

            elif snapshot.state == ExamState.FINISHED:
                _render_report(snapshot)
                if not click.confirm("Start a new session?", default=False):
                    return
                controller.reset()
                console.clear()
                await _submit_with_loading(controller, START_MARKER)

            else:
                # THINKING/ANALYZING cannot be observed between awaited submissions
                logger.error(f"Unexpected exam state: {snapshot.state.value}")
                return
    finally:
        await llm_manager.cleanup()


async def _submit_with_loading(controller: ExamController, answer: str) -> None:
    """Submit while showing a live panel that follows the controller state."""
    submit_task = asyncio.create_task(controller.submit_answer(answer))

    with Live(_loading_panel(controller.state, 0), console=console, refresh_per_second=4, transient=True) as live:
        tick = 0
        while not submit_task.done():
            live.update(_loading_panel(controller.state, tick))
            await asyncio.wait({submit_task}, timeout=LOADING_POLL_SECONDS)
            tick += 1

    await submit_task


def _loading_panel(state: ExamState, tick: int) -> Panel:
    # Rotate the message about once per second
    step = int(tick * LOADING_POLL_SECONDS)
    if state == ExamState.ANALYZING:
        return Panel(Text(ANALYZING_MESSAGES[step % len(ANALYZING_MESSAGES)], style="magenta"),
                     title="Analyzing", border_style="magenta")
    return Panel(Text(THINKING_MESSAGES[step % len(THINKING_MESSAGES)], style="cyan"),
                 title="Thinking", border_style="blue")


def _render_active(snapshot: ExamSnapshot) -> None:
    """Show feedback, transcript and the open question.

    Team and model text is wrapped in ``Text`` so brackets print literally.
    """
    console.clear()

    if snapshot.feedback:
        console.print(Panel(Text(snapshot.feedback), title="Previous Feedback", border_style="magenta"))

    for turn in snapshot.turns:
        style = "cyan" if turn.role == TurnRole.TEAM else "white"
        console.print(Text.assemble((f"{turn.role.display_name}:", f"bold {style}"), " ", turn.text))

    console.print(Panel(
        Text(snapshot.current_question),
        title=f"Current Question | Answered: {snapshot.answers_submitted}/{snapshot.max_questions}",
        border_style="green",
    ))


def _render_report(snapshot: ExamSnapshot) -> None:
    console.clear()
    report = snapshot.report

    if report is None:
        console.print(Panel(Text(snapshot.feedback or "No report available."), title="Performance Report", border_style="red"))
        return

    content = Text("\n").join([
        Text.assemble(("Team Score: ", "bold"), str(report.team_score)),
        Text.assemble(("Collaboration Level: ", "bold"), report.collaboration_level.value),
        Text(),
        Text("🕵️ Behavioral Analysis", style="bold magenta"),
        Text(report.behavioral_analysis),
        Text(),
        Text("🚀 Improvement Plan", style="bold magenta"),
        Text(f"\"{report.improvement_plan}\"", style="italic"),
    ])
    console.print(Panel(content, title="🎓 Performance Report", border_style="magenta"))


def _get_team_answer() -> Optional[str]:
    """Read a non-blank answer; ``None`` means the team wants to stop."""
    while True:
        console.print("\n[bold yellow]Type your answer (explain your reasoning!), or 'quit':[/bold yellow]")
        answer = input("Team: ").strip()

        if answer.lower() in QUIT_WORDS:
            return None
        if answer:
            return answer
        console.print("[yellow]The answer cannot be empty.[/yellow]")


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user.[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
