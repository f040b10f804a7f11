#!/usr/bin/env python3
"""Run the Chopsticks API under uvicorn, restarting when the package changes.

Press "r" + Enter to restart by hand, "q" + Enter to quit.
"""
from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import threading
import time

try:
    from watchfiles import watch
except ImportError:  # pragma: no cover
    print("Missing dependency: watchfiles. Run: pip install -e '.[dev]'")
    sys.exit(1)

logger = logging.getLogger("chopsticks.dev")

ROOT = os.path.dirname(os.path.abspath(__file__))
WATCH_PATHS = [os.path.join(ROOT, "chopsticks")]
HOST = os.environ.get("CHOPSTICKS_HOST", "127.0.0.1")
PORT = os.environ.get("CHOPSTICKS_PORT", "8000")


class ServerProcess:
    def __init__(self) -> None:
        self.process: subprocess.Popen[bytes] | None = None
        self.restart_event = threading.Event()
        self.stop_event = threading.Event()

    def start(self) -> None:
        logger.info("Starting uvicorn on %s:%s", HOST, PORT)
        self.process = subprocess.Popen(
            [sys.executable, "-m", "uvicorn", "chopsticks.main:app", "--host", HOST, "--port", PORT],
            cwd=ROOT,
        )

    def stop(self) -> None:
        if not self.process or self.process.poll() is not None:
            return
        self.process.send_signal(signal.SIGTERM)
        try:
            self.process.wait(timeout=3)
        except subprocess.TimeoutExpired:
            logger.warning("uvicorn did not exit in time, killing it")
            self.process.kill()
            self.process.wait(timeout=3)

    def run(self) -> None:
        self.start()
        while not self.stop_event.is_set():
            if self.restart_event.wait(timeout=0.2):
                self.restart_event.clear()
                if self.stop_event.is_set():
                    break
                self.stop()
                self.start()


def _watch_files(server: ServerProcess) -> None:
    for changes in watch(*WATCH_PATHS, stop_event=server.stop_event):
        logger.info("Detected %d changed file(s), restarting", len(changes))
        server.restart_event.set()


def _watch_keys(server: ServerProcess) -> None:
    while not server.stop_event.is_set():
        ch = sys.stdin.read(1)
        if not ch:
            time.sleep(0.05)
            continue
        if ch.lower() == "r":
            server.restart_event.set()
        elif ch.lower() == "q":
            server.stop_event.set()
            server.restart_event.set()


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    server = ServerProcess()
    threading.Thread(target=_watch_files, args=(server,), daemon=True).start()
    threading.Thread(target=_watch_keys, args=(server,), daemon=True).start()

    try:
        server.run()
    except KeyboardInterrupt:
        server.stop_event.set()
    finally:
        server.stop()


if __name__ == "__main__":
    main()
