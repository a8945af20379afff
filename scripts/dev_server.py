"""
开发模式专用：代码或 board.yaml 变更后自动重启 Tile Board 后端。
用法: python scripts/dev_server.py [port]

The board root comes from TILE_BOARD_ROOT (default: the repository) and is
passed on to the backend, so the watched config file is the one it loads.
A changed config is validated first; an invalid one keeps the running backend.
"""

import logging
import os
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path

from pydantic import ValidationError
from watchdog.events import PatternMatchingEventHandler
from watchdog.observers import Observer
import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tileboard.config_loader import find_config_root, load_config  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("dev_server")

# 连续保存（编辑器写临时文件、格式化）合并为一次重启
DEBOUNCE_SECONDS = 0.8


class Backend:
    """后端子进程：启动、停止、检测意外退出。"""

    def __init__(self, port: int, board_root: Path):
        self.port = port
        self.board_root = board_root
        self.process: subprocess.Popen | None = None
        self._reported_exit = False
        # restart runs on the debounce timer thread, check_exit on the main thread
        self._lock = threading.Lock()

    def start(self):
        env = os.environ.copy()
        env["PYTHONPATH"] = str(PROJECT_ROOT)
        env["TILE_BOARD_ROOT"] = str(self.board_root)
        self.process = subprocess.Popen(
            [sys.executable, str(PROJECT_ROOT / "main.py"), str(self.port)],
            cwd=self.board_root,
            env=env,
        )
        self._reported_exit = False
        logger.info(f"后端已启动 (PID: {self.process.pid}, port={self.port}, root={self.board_root})")

    def stop(self):
        if self.process is None or self.process.poll() is not None:
            return
        self.process.send_signal(signal.SIGTERM)
        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("后端未在 5 秒内退出，强制终止")
            self.process.kill()
            self.process.wait()

    def restart(self):
        with self._lock:
            self.stop()
            self.start()

    def check_exit(self):
        """Report a crash once; the next file change starts it again."""
        with self._lock:
            if self.process is None or self._reported_exit:
                return
            code = self.process.poll()
            if code is None:
                return
            self._reported_exit = True
        logger.error(f"后端已退出 (code={code})，等待下一次文件变更后重启")


class ReloadHandler(PatternMatchingEventHandler):
    def __init__(self, backend: Backend, config_path: Path):
        super().__init__(
            patterns=["*.py", str(config_path)],
            ignore_patterns=["*/__pycache__/*"],
            ignore_directories=True,
        )
        self.backend = backend
        self.config_path = config_path
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()
        self._changed: set[str] = set()

    def on_any_event(self, event):
        if event.event_type not in ("modified", "created", "moved"):
            return
        path = getattr(event, "dest_path", "") or event.src_path
        with self._lock:
            self._changed.add(path)
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(DEBOUNCE_SECONDS, self._reload)
            self._timer.daemon = True
            self._timer.start()

    def _reload(self):
        with self._lock:
            changed, self._changed = self._changed, set()
            self._timer = None

        if str(self.config_path) in changed and not self._config_is_valid():
            return

        names = ", ".join(sorted(os.path.relpath(p, PROJECT_ROOT) for p in changed))
        logger.info(f"检测到变更: {names}")
        self.backend.restart()

    def _config_is_valid(self) -> bool:
        try:
            load_config(self.config_path)
        except (yaml.YAMLError, ValidationError) as e:
            logger.error(f"{self.config_path} 无效，保留当前后端: {e}")
            return False
        return True


def main():
    board_root = Path(os.getenv("TILE_BOARD_ROOT", PROJECT_ROOT)).resolve()
    os.environ["TILE_BOARD_ROOT"] = str(board_root)
    config_path = find_config_root().resolve()
    port = int(sys.argv[1]) if len(sys.argv) > 1 else load_config(config_path).server.port

    backend = Backend(port, board_root)
    backend.start()

    handler = ReloadHandler(backend, config_path)
    observer = Observer()
    observer.schedule(handler, str(PROJECT_ROOT / "tileboard"), recursive=True)
    observer.schedule(handler, str(PROJECT_ROOT), recursive=False)  # main.py
    if config_path.parent.is_dir() and config_path.parent != PROJECT_ROOT:
        observer.schedule(handler, str(config_path.parent), recursive=False)
    logger.info(f"监控: tileboard/, main.py, {config_path}")

    observer.start()
    try:
        while True:
            time.sleep(1)
            backend.check_exit()
    except KeyboardInterrupt:
        logger.info("正在退出...")
    finally:
        observer.stop()
        backend.stop()
    observer.join()


if __name__ == "__main__":
    main()
