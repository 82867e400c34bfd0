#!/usr/bin/env python3
"""Local runner for the Client Pulse backend stack.

Starts Redis, the FastAPI API, a Celery worker and Celery beat (the daily
bulk refresh) from a project virtual environment. With ``TASK_MODE=inline``
in `.env` only the API is started, since refreshes then run in-process.

Requirements:
  - Python 3.10+
  - redis-server (only for TASK_MODE=celery)

Usage:
  python3 run_dev.py

Press Ctrl+C to stop all services.
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from shutil import which

ROOT_DIR = Path(__file__).resolve().parent
BACKEND_DIR = ROOT_DIR / "backend"
VENV_DIR = ROOT_DIR / ".venv"
VENV_PYTHON = VENV_DIR / "bin" / "python"
CELERY_APP = "clientpulse.tasks.celery_app"


class CommandError(RuntimeError):
    """Raised when a required command is missing or a service dies."""


def log(message: str) -> None:
    print(message, flush=True)


def load_env_file(path: Path) -> dict[str, str]:
    env: dict[str, str] = {}
    if not path.exists():
        return env

    for raw_line in path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        env[key.strip()] = value.strip().strip('"').strip("'")
    return env


def ensure_venv() -> None:
    if VENV_PYTHON.exists():
        return

    log("\n📦 Creating virtual environment...")
    subprocess.run([sys.executable, "-m", "venv", str(VENV_DIR)], check=True)
    log("📦 Installing clientpulse in editable mode...")
    subprocess.run([str(VENV_PYTHON), "-m", "pip", "install", "-e", "."], cwd=ROOT_DIR, check=True)


def start_process(command: list[str], *, name: str) -> subprocess.Popen[bytes]:
    log(f"▶️  Starting {name}: {' '.join(command)}")
    env = os.environ.copy()
    env["PYTHONPATH"] = str(BACKEND_DIR)
    return subprocess.Popen(command, cwd=BACKEND_DIR, env=env)


def main() -> None:
    os.chdir(ROOT_DIR)
    log("\n🚀 Starting Client Pulse backend")
    log("===============================")

    if not (ROOT_DIR / ".env").exists():
        raise CommandError(".env file not found. Copy .env.example and fill in credentials.")

    ensure_venv()
    env_vars = load_env_file(ROOT_DIR / ".env")
    os.environ.update(env_vars)
    task_mode = env_vars.get("TASK_MODE", "celery").strip().lower()

    processes: list[tuple[str, subprocess.Popen[bytes]]] = []

    try:
        if task_mode == "celery":
            redis_server = which("redis-server")
            if not redis_server:
                raise CommandError("redis-server not found. Install Redis or set TASK_MODE=inline.")
            processes.append(("redis", start_process(
                [redis_server, "--save", "", "--appendonly", "no"],
                name="redis-server",
            )))
            time.sleep(0.5)

        processes.append(("backend", start_process(
            [str(VENV_PYTHON), "-m", "uvicorn", "clientpulse.main:app", "--reload", "--port", "8000"],
            name="FastAPI backend",
        )))

        if task_mode == "celery":
            processes.append(("worker", start_process(
                [str(VENV_PYTHON), "-m", "celery", "-A", CELERY_APP, "worker", "--loglevel=info"],
                name="Celery worker",
            )))
            processes.append(("beat", start_process(
                [str(VENV_PYTHON), "-m", "celery", "-A", CELERY_APP, "beat", "--loglevel=info"],
                name="Celery beat",
            )))

        log("\n✅ Services started. API available at http://localhost:8000")
        log("   Press Ctrl+C to stop.")

        while True:
            for name, proc in processes:
                ret = proc.poll()
                if ret is not None:
                    raise CommandError(f"{name} exited unexpectedly with code {ret}")
            time.sleep(1)

    except KeyboardInterrupt:
        log("\n🛑 Caught Ctrl+C. Shutting down...")
    finally:
        for name, proc in reversed(processes):
            if proc.poll() is None:
                log(f"🔻 Stopping {name} (pid {proc.pid})")
                proc.send_signal(signal.SIGTERM)
        time.sleep(1)
        for _, proc in reversed(processes):
            if proc.poll() is None:
                proc.kill()


if __name__ == "__main__":
    try:
        main()
    except CommandError as error:
        log(f"❌ {error}")
        raise SystemExit(1) from error
