"""JobPilot terminal entry point."""

import asyncio
import json
import logging
from pathlib import Path
from typing import get_args

from pydantic import ValidationError

from jobpilot.chat.controller import ChatController
from jobpilot.chat.messages import TextPart, ToolInvocation
from jobpilot.config import settings
from jobpilot.errors import JobPilotError
from jobpilot.jobs.models import ApplicationStatus, UserProfile
from jobpilot.jobs.store import JobStore
from jobpilot.llm.client import AnthropicCollaborator
from jobpilot.tools import discovery_registry, matching_registry
from jobpilot.tools.base import ToolContext

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)

HELP = (
    "Commands: /jobs, /profile <file.json>, /delete <id>, /status <id> <status>, "
    "/notes <id> <text>, /resume <id> <file>, /clear, /quit"
)
STATUSES = get_args(ApplicationStatus)


def build_controller() -> ChatController:
    """Wire the store, both collaborators and the controller together."""
    store = JobStore.get()
    context = ToolContext(user_id=settings.user_id, gateway=store)
    discovery = AnthropicCollaborator(
        discovery_registry,
        max_rounds=settings.discovery_max_tool_rounds,
        tool_context=context,
    )
    matching = AnthropicCollaborator(
        matching_registry,
        max_rounds=settings.matching_max_tool_rounds,
        tool_context=context,
    )
    return ChatController(store, settings.user_id, discovery, matching)


def _print_jobs(controller: ChatController) -> None:
    if not controller.saved_jobs:
        print("No saved jobs yet.")
        return
    for job in controller.saved_jobs:
        score = f"{job.score:.0f} ({job.priority})" if job.is_scored else "unscored"
        status = job.application_status or "saved"
        print(f"- {job.id}: {job.title} at {job.company}, {job.location} [{score}, {status}]")


def _print_new(controller: ChatController, seen: set[str]) -> None:
    for item in controller.timeline():
        message = item.message
        if message.role != "assistant" or message.id in seen:
            continue
        seen.add(message.id)
        for part in message.parts:
            if isinstance(part, TextPart) and part.text:
                print(f"[{message.origin.value}] {part.text}")
            elif isinstance(part, ToolInvocation):
                print(f"  ({part.tool_name}: {part.state.value})")


async def _load_profile(controller: ChatController, path: str) -> None:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        await controller.save_profile(UserProfile.model_validate(data))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        print(f"Could not read profile: {exc}")
        return
    except JobPilotError as exc:
        print(f"Profile rejected: {exc}")
        return
    print("Profile saved.")


def _print_failures(controller: ChatController) -> None:
    for failure in controller.failures:
        print(f"Could not apply {failure.tool_name}: {failure.error}")
    controller.failures.clear()


async def _job_command(controller: ChatController, text: str) -> None:
    """Handle /delete, /status, /notes and /resume."""
    command, _, rest = text.partition(" ")
    job_id, _, arg = rest.strip().partition(" ")
    arg = arg.strip()
    if not job_id:
        print(HELP)
        return
    try:
        if command == "/delete":
            await controller.delete_job(job_id)
            print(f"Deleted {job_id}.")
        elif command == "/status":
            if arg not in STATUSES:
                print(f"Status must be one of: {', '.join(STATUSES)}")
                return
            await controller.set_job_status(job_id, arg)
            print(f"{job_id} is now {arg}.")
        elif command == "/notes":
            await controller.set_job_notes(job_id, arg)
            print(f"Notes saved for {job_id}.")
        else:
            content = Path(arg).read_text(encoding="utf-8")
            await controller.attach_resume(job_id, content)
            print(f"Resume attached to {job_id}.")
    except OSError as exc:
        print(f"Could not read resume: {exc}")
    except JobPilotError as exc:
        print(exc)


async def run() -> None:
    """Read user input and converse until /quit."""
    controller = build_controller()
    await controller.load()
    seen: set[str] = set()
    print(f"JobPilot ready. {HELP}")

    while True:
        text = (await asyncio.to_thread(input, "> ")).strip()
        if not text:
            continue
        if text == "/quit":
            await controller.clear_chat()
            break
        if text == "/clear":
            await controller.clear_chat()
            seen.clear()
            print("Conversation cleared.")
            _print_failures(controller)
            continue
        if text == "/jobs":
            _print_jobs(controller)
            continue
        if text.startswith("/profile"):
            await _load_profile(controller, text.removeprefix("/profile").strip())
            continue
        if text.split(" ", 1)[0] in ("/delete", "/status", "/notes", "/resume"):
            await _job_command(controller, text)
            continue

        try:
            await controller.send_message(text)
        except JobPilotError as exc:
            print(exc)
            continue

        _print_new(controller, seen)
        if controller.active_session.error:
            print(f"The {controller.state.active_agent.value} agent failed: "
                  f"{controller.active_session.error}")
        _print_failures(controller)


def main() -> None:
    """Start the terminal chat."""
    logger.info("Starting JobPilot with model %s...", settings.claude_model)
    try:
        asyncio.run(run())
    except (KeyboardInterrupt, EOFError):
        pass


if __name__ == "__main__":
    main()
