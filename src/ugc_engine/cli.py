"""Command-line interface using Typer."""

from pathlib import Path
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ugc_engine import __version__
from ugc_engine.domain.enums import AspectRatio, Language, TaskKind, TaskStatus
from ugc_engine.exceptions import UGCEngineError
from ugc_engine.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="ugc-engine",
    help="UGC Engine - AI product video and image generation CLI",
    add_completion=False,
)

# Subcommand groups
images_app = typer.Typer(help="Product image commands")
tasks_app = typer.Typer(help="Generation task commands")
app.add_typer(images_app, name="images")
app.add_typer(tasks_app, name="tasks")

console = Console()

USER_OPTION = typer.Option("local", "--user", "-u", envvar="UGC_USER_ID", help="Owner user ID")

STATUS_STYLES = {
    TaskStatus.COMPLETED: "green",
    TaskStatus.FAILED: "red",
    TaskStatus.CANCELLED: "dim",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"UGC Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """UGC Engine - Turn product photos into marketing videos and images."""
    pass


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        console.print(f"[bold red]Invalid {label}: {value}[/bold red]")
        raise typer.Exit(code=1)


def _styled_status(status: str) -> str:
    style = STATUS_STYLES.get(TaskStatus(status), "yellow")
    return f"[{style}]{status}[/{style}]"


@app.command()
def health() -> None:
    """Check the health of all services."""
    import httpx

    from ugc_engine.config import settings

    url = f"http://{settings.api_host}:{settings.api_port}/health/ready"

    try:
        response = httpx.get(url, timeout=10)
        data = response.json()

        table = Table(title="Service Health")
        table.add_column("Component", style="cyan")
        table.add_column("Status")

        table.add_row("Database", "✓" if data.get("database") else "✗")
        table.add_row("Redis", "✓" if data.get("redis") else "✗")

        for component, healthy in data.get("components", {}).items():
            table.add_row(component, "✓" if healthy else "✗")

        console.print(table)

        if data.get("ready"):
            console.print("[bold green]All services healthy![/bold green]")
        else:
            console.print("[bold yellow]Some services unhealthy[/bold yellow]")
            raise typer.Exit(code=1)

    except httpx.RequestError as e:
        console.print(f"[bold red]Cannot connect to API: {e}[/bold red]")
        console.print("[dim]Is the API server running?[/dim]")
        raise typer.Exit(code=1)


@app.command()
def worker(
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Worker processes (defaults to settings)"
    ),
) -> None:
    """Start a Celery worker consuming every job queue."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    from ugc_engine.worker import run_worker

    run_worker(concurrency=concurrency)


# =============================================================================
# IMAGE COMMANDS
# =============================================================================


@images_app.command("upload")
def images_upload(
    paths: list[Path] = typer.Argument(..., exists=True, dir_okay=False, help="Image files"),
    user: str = USER_OPTION,
) -> None:
    """Store product photos and print their IDs for use with 'tasks create'."""
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.storage import StorageService
    from ugc_engine.services.task_service import TaskService

    table = Table(title="Uploaded Images")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("File")
    table.add_column("Type")
    table.add_column("Size", justify="right")

    with get_session_context() as session:
        service = TaskService(session, storage=StorageService())
        for path in paths:
            image = service.register_source_image(user, path.read_bytes(), path.name)
            table.add_row(str(image.id), path.name, image.mime_type, f"{image.file_size or 0:,}")

    console.print(table)


# =============================================================================
# TASK COMMANDS
# =============================================================================


@tasks_app.command("create")
def tasks_create(
    image: list[str] = typer.Option(..., "--image", "-i", help="Source image ID (repeatable)"),
    kind: TaskKind = typer.Option(TaskKind.VIDEO, "--kind", "-k", help="video or image"),
    duration: Optional[int] = typer.Option(
        None, "--duration", "-d", help="Target video duration in seconds (5-60)"
    ),
    ratio: AspectRatio = typer.Option(AspectRatio.PORTRAIT, "--ratio", "-r", help="Aspect ratio"),
    language: Language = typer.Option(Language.EN, "--language", "-l", help="Output language"),
    count: int = typer.Option(1, "--count", "-n", help="Scripts or images to generate"),
    no_audio: bool = typer.Option(False, "--no-audio", help="Generate silent video"),
    user: str = USER_OPTION,
) -> None:
    """Create a generation task and enqueue its workflow.

    Example:
        ugc-engine tasks create --image <uuid> --duration 15 --language en
    """
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.storage import StorageService
    from ugc_engine.services.task_service import NewTask, TaskService
    from ugc_engine.worker import job_queue

    params = NewTask(
        kind=kind,
        source_image_ids=[_parse_uuid(i, "image ID") for i in image],
        target_duration=duration,
        aspect_ratio=ratio,
        language=language,
        count=count,
        generate_audio=not no_audio,
    )

    try:
        with get_session_context() as session:
            service = TaskService(session, job_queue=job_queue, storage=StorageService())
            task = service.create_task(user, params)
            task_id, job_id = task.id, task.job_id
    except UGCEngineError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        Panel.fit(
            f"[bold]Task created[/bold]\n\n"
            f"[cyan]Task ID:[/cyan] {task_id}\n"
            f"[cyan]Job ID:[/cyan] {job_id}\n"
            f"[cyan]Kind:[/cyan] {kind.value}",
            title="Generation Task",
            border_style="blue",
        )
    )
    console.print(f"[dim]Use 'ugc-engine tasks status {task_id}' to check progress[/dim]")


@tasks_app.command("status")
def tasks_status(
    task_id: str = typer.Argument(..., help="Task ID (UUID)"),
) -> None:
    """Show a task with its generated videos and images."""
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.storage import StorageService
    from ugc_engine.services.task_service import TaskService

    task_uuid = _parse_uuid(task_id, "task ID")

    with get_session_context() as session:
        try:
            detail = TaskService(session, storage=StorageService()).get_task_detail(task_uuid)
        except UGCEngineError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(code=1)

        task = detail.task
        table = Table(title="Task", show_header=False)
        table.add_column("Field", style="cyan")
        table.add_column("Value")
        table.add_row("ID", str(task.id))
        table.add_row("Kind", task.kind)
        table.add_row("Status", _styled_status(task.status))
        if task.error_message:
            table.add_row("Message", task.error_message)
        table.add_row("Duration", f"{task.target_duration}s" if task.target_duration else "-")
        table.add_row("Ratio / Language", f"{task.aspect_ratio} / {task.language}")
        table.add_row("Job ID", task.job_id or "-")
        table.add_row("Started", str(task.started_at or "-"))
        table.add_row("Completed", str(task.completed_at or "-"))
        console.print(table)

        if detail.videos:
            videos = Table(title="Videos")
            videos.add_column("ID", style="dim", no_wrap=True)
            videos.add_column("Status")
            videos.add_column("Download")
            videos.add_column("URL")
            for video in detail.videos:
                videos.add_row(
                    str(video["id"])[:8] + "...",
                    video["status"],
                    video["download_status"],
                    video["url"] or "-",
                )
            console.print(videos)

        if detail.images:
            images = Table(title="Images")
            images.add_column("ID", style="dim", no_wrap=True)
            images.add_column("Size")
            images.add_column("URL")
            for img in detail.images:
                images.add_row(
                    str(img["id"])[:8] + "...",
                    f"{img['width']}x{img['height']}",
                    img["url"] or "-",
                )
            console.print(images)


@tasks_app.command("list")
def tasks_list(
    status: Optional[TaskStatus] = typer.Option(None, "--status", "-s", help="Filter by status"),
    limit: int = typer.Option(20, "--limit", "-n", help="Number of tasks to show"),
    user: str = USER_OPTION,
) -> None:
    """List recent tasks."""
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.task_service import TaskService

    with get_session_context() as session:
        tasks = TaskService(session).list_tasks(user, status=status, limit=limit)

        if not tasks:
            console.print("[dim]No tasks found[/dim]")
            return

        table = Table(title="Generation Tasks")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Kind", style="cyan")
        table.add_column("Status")
        table.add_column("Count", justify="right")
        table.add_column("Created")

        for task in tasks:
            table.add_row(
                str(task.id)[:8] + "...",
                task.kind,
                _styled_status(task.status),
                str(task.count),
                task.created_at.strftime("%Y-%m-%d %H:%M") if task.created_at else "-",
            )

        console.print(table)


@tasks_app.command("retry")
def tasks_retry(
    task_id: str = typer.Argument(..., help="Task ID (UUID)"),
) -> None:
    """Re-run a failed task."""
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.task_service import TaskService
    from ugc_engine.worker import job_queue

    task_uuid = _parse_uuid(task_id, "task ID")

    try:
        with get_session_context() as session:
            task = TaskService(session, job_queue=job_queue).retry_task(task_uuid)
            job_id = task.job_id
    except UGCEngineError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"[green]Task re-enqueued: job {job_id}[/green]")


@tasks_app.command("run")
def tasks_run(
    task_id: str = typer.Argument(..., help="Task ID (UUID)"),
    no_audio: bool = typer.Option(False, "--no-audio", help="Generate silent video"),
) -> None:
    """Run a task's workflow in this process and wait for the result.

    Bypasses the job queue; useful for development and debugging.
    """
    from ugc_engine.config import settings
    from ugc_engine.db.session import get_session_context
    from ugc_engine.jobs.context import get_worker_context
    from ugc_engine.services.task_service import TaskService
    from ugc_engine.services.workflow import run_video_workflow_and_wait

    task_uuid = _parse_uuid(task_id, "task ID")
    ctx = get_worker_context()

    with get_session_context() as session:
        try:
            kind = TaskKind(TaskService(session).get_task(task_uuid).kind)
        except UGCEngineError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(code=1)

    with console.status(f"[bold blue]Running {kind.value} workflow...", spinner="dots"):
        if kind == TaskKind.VIDEO:
            result = run_video_workflow_and_wait(
                ctx.video_workflow(),
                ctx.reconciler(),
                task_uuid,
                generate_audio=not no_audio,
                max_attempts=settings.poll_max_attempts,
                poll_interval=settings.poll_interval_seconds,
            )
        else:
            result = ctx.image_workflow().execute(task_uuid)

    table = Table(title="Workflow Result", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Status", _styled_status(result.status.value))
    table.add_row("Product", str(result.product_id or "-"))
    if result.script_id:
        table.add_row("Script", str(result.script_id))
        table.add_row("Shots", str(len(result.shot_ids)))
    if result.video_clip_ids:
        table.add_row("Videos", ", ".join(str(i) for i in result.video_clip_ids))
    if result.image_ids:
        table.add_row("Images", str(len(result.image_ids)))
    if result.advisory:
        table.add_row("Note", f"[yellow]{result.advisory}[/yellow]")
    if result.error:
        table.add_row("Error", f"[red]{result.error}[/red]")
    console.print(table)

    if result.failed:
        raise typer.Exit(code=1)


@tasks_app.command("cancel")
def tasks_cancel(
    task_id: str = typer.Argument(..., help="Task ID (UUID)"),
) -> None:
    """Cancel a task; the running stage finishes, later stages are skipped."""
    from ugc_engine.db.session import get_session_context
    from ugc_engine.services.task_service import TaskService

    task_uuid = _parse_uuid(task_id, "task ID")

    try:
        with get_session_context() as session:
            TaskService(session).cancel_task(task_uuid)
    except UGCEngineError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"[green]Task cancelled: {task_uuid}[/green]")


if __name__ == "__main__":
    app()
