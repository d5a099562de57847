# vibeshare/backend/terminal.py

import asyncio
import shlex
from pathlib import Path
from typing import Any, Dict

from shared.errors import UnsupportedCommand, ValidationFailed
from shared.logging_config import setup_logger

# Set up logger
logger = setup_logger(__name__)

ALLOWED_COMMANDS = [
    "npm", "yarn", "node", "ls", "dir", "pwd", "cat", "type",
    "echo", "git", "python", "pip", "python3", "pip3",
]


def parse_command(command: str) -> list:
    if not command or not command.strip():
        raise ValidationFailed("Command is required")
    try:
        parts = shlex.split(command)
    except ValueError as e:
        raise ValidationFailed(f"Could not parse command: {e}")
    if parts[0] not in ALLOWED_COMMANDS:
        logger.warning(f"Rejected terminal command: {parts[0]}")
        raise UnsupportedCommand(
            f"Command '{parts[0]}' is not allowed. Allowed commands: {', '.join(ALLOWED_COMMANDS)}"
        )
    return parts


async def run_command(cwd: Path, command: str, timeout: float) -> Dict[str, Any]:
    """Run an allow-listed command in cwd without a shell."""
    parts = parse_command(command)
    logger.info(f"Running terminal command in {cwd}: {parts}")
    try:
        process = await asyncio.create_subprocess_exec(
            *parts,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        logger.error(f"Command execution error: {e}")
        return {"success": False, "error": f"Failed to execute command: {e}", "exitCode": -1}

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"Terminal command timed out after {timeout:g} seconds: {parts}")
        return {"success": False, "error": f"Command timed out after {timeout:g} seconds", "exitCode": -1}

    output = stdout.decode("utf-8", errors="replace").strip()
    error_output = stderr.decode("utf-8", errors="replace").strip()
    if process.returncode == 0:
        return {
            "success": True,
            "output": output,
            "exitCode": 0,
            "message": None if output else "Command executed successfully",
        }
    return {
        "success": False,
        "error": error_output or f"Command failed with exit code {process.returncode}",
        "output": output,
        "exitCode": process.returncode,
    }
