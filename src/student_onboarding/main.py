"""
Student Onboarding - CLI Entry Point.

Usage:
    student-onboarding run        Walk through onboarding interactively
    student-onboarding health     Check configuration
    student-onboarding --help     Show help
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Prompt
from rich.spinner import Spinner
from rich.table import Table

from student_onboarding.notifications import Notifier
from student_onboarding.session import Navigator

app = typer.Typer(
    name="student-onboarding",
    help="Student onboarding - set up your profile, chat identity and session.",
    add_completion=False,
)
console = Console()


class ConsoleNotifier(Notifier):
    def success(self, message: str) -> None:
        console.print(f"[green]✅ {message}[/green]")

    def error(self, message: str) -> None:
        console.print(f"[red]❌ {message}[/red]")

    def info(self, message: str) -> None:
        console.print(f"[blue]ℹ️  {message}[/blue]")


class ConsoleNavigator(Navigator):
    def __init__(self) -> None:
        self.path: str | None = None

    def navigate(self, path: str) -> None:
        self.path = path
        console.print(f"\n[dim]→ Navigating to {path}[/dim]")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _show_step(wizard) -> None:
    definition = wizard.definition
    console.print(
        Panel.fit(
            f"[dim]{definition.label.upper()}[/dim]\n"
            f"[bold]{definition.title}[/bold]\n"
            f"{definition.description}",
            border_style="magenta",
        )
    )


def _show_errors(wizard) -> None:
    for field_name, message in wizard.errors.items():
        console.print(f"  [red]{field_name}: {message}[/red]")


def _show_subjects(wizard) -> None:
    table = Table(title="Preferred Subjects", show_header=False)
    for i, subject in enumerate(wizard.draft.subjects):
        table.add_row(str(i), subject or "[dim](empty)[/dim]")
    console.print(table)


def _edit_personal_details(wizard) -> None:
    draft = wizard.draft
    wizard.set_field("firstName", Prompt.ask("First name*", default=draft.first_name, console=console))
    wizard.set_field("lastName", Prompt.ask("Last name*", default=draft.last_name, console=console))
    wizard.set_field("phone", Prompt.ask("Phone number*", default=draft.phone, console=console))
    wizard.set_field("address", Prompt.ask("Address*", default=draft.address, console=console))
    for i, subject in enumerate(wizard.draft.subjects):
        wizard.set_field(f"subjects.{i}", Prompt.ask(f"Subject {i}*", default=subject, console=console))


def _personal_details_screen(wizard) -> bool:
    """Returns False when the user quits."""
    _edit_personal_details(wizard)
    while True:
        _show_subjects(wizard)
        _show_errors(wizard)
        choices = ["next", "edit", "add"] + (["remove"] if wizard.can_remove_subject else []) + ["quit"]
        action = Prompt.ask("Action", choices=choices, default="next", console=console)
        if action == "quit":
            return False
        if action == "edit":
            _edit_personal_details(wizard)
        elif action == "add":
            index = wizard.add_subject()
            wizard.set_field(f"subjects.{index}", Prompt.ask(f"Subject {index}*", console=console))
        elif action == "remove":
            index = Prompt.ask("Remove subject #", default="0", console=console)
            if not index.isdigit() or not wizard.remove_subject(int(index)):
                console.print("[yellow]Nothing removed[/yellow]")
        elif wizard.next():
            return True


def _profile_picture_screen(wizard) -> bool | None:
    """Returns False on quit, None on back, True once submitted."""
    url = Prompt.ask(
        "Display picture URL (blank to skip)",
        default=wizard.draft.profile_photo_url or "",
        console=console,
    )
    wizard.set_field("profilePhotoUrl", url or None)
    while True:
        _show_errors(wizard)
        action = Prompt.ask("Action", choices=["submit", "back", "edit", "quit"], default="submit", console=console)
        if action == "quit":
            return False
        if action == "back":
            wizard.back()
            return None
        if action == "edit":
            url = Prompt.ask("Display picture URL (blank to skip)", console=console)
            wizard.set_field("profilePhotoUrl", url or None)
            continue

        with Live(Spinner("dots", text="Submitting..."), console=console, transient=True):
            result = asyncio.run(wizard.submit())
        if result.success:
            return True


@app.command()
def run(
    user_id: str = typer.Option(None, "--user-id", "-u", help="User id (defaults to DEV_USER_ID)"),
    token: str = typer.Option(None, "--token", "-t", help="Current access token"),
) -> None:
    """Walk through the student onboarding wizard."""
    from student_onboarding.config import get_settings
    from student_onboarding.session import Session, SessionUser
    from student_onboarding.state import OnboardingStep
    from student_onboarding.wizard import OnboardingWizard

    settings = get_settings()
    _configure_logging(settings.log_level)

    user_id = user_id or settings.dev_user_id
    session = Session(user=SessionUser(id=user_id), access_token=token) if token else None
    navigator = ConsoleNavigator()
    wizard = OnboardingWizard.from_settings(
        user_id,
        navigator,
        notifier=ConsoleNotifier(),
        session=session,
        settings=settings,
    )

    console.print(
        Panel.fit(
            "[bold green]Student Onboarding[/bold green]\n"
            "Create your student profile.\n\n"
            "[dim]Choose 'quit' at any prompt to stop.[/dim]",
            title="Welcome",
            border_style="green",
        )
    )

    try:
        while True:
            _show_step(wizard)
            if wizard.step is OnboardingStep.PERSONAL_DETAILS:
                if not _personal_details_screen(wizard):
                    break
            elif wizard.step is OnboardingStep.PROFILE_PICTURE:
                if _profile_picture_screen(wizard) is False:
                    break
            else:
                console.input("\n[bold]Press Enter: Let's Go![/bold] ")
                target = asyncio.run(wizard.lets_go())
                console.print(f"[dim]Finished: {target.value}[/dim]")
                break
    except KeyboardInterrupt:
        console.print("\n\n[dim]Onboarding interrupted. Goodbye! 👋[/dim]")


@app.command()
def health() -> None:
    """Check configuration."""
    from student_onboarding.config import get_settings

    console.print("\n[bold]Student Onboarding Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("✅ Configuration loaded")
        console.print(f"   Environment: {settings.onboarding_env}")
        console.print(f"   Log level: {settings.log_level}")

        for label, url in (("API", settings.api_base_url), ("Chat API", settings.chat_api_base_url)):
            if url.startswith(("http://", "https://")):
                console.print(f"✅ {label} URL configured: {url}")
            else:
                console.print(f"❌ {label} URL missing or invalid")
                raise typer.Exit(1)

        if settings.external_call_timeout_seconds is None:
            console.print("ℹ️  No bounded wait on external calls")
        else:
            console.print(f"✅ External calls bounded to {settings.external_call_timeout_seconds}s")

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Check your environment or .env file.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from student_onboarding import __version__

    console.print(f"Student Onboarding v{__version__}")


if __name__ == "__main__":
    app()
