"""
终端输出辅助：阶段提示、警告与命令回显。
"""

from __future__ import annotations

import sys

PREFIX = "[provision-toolkit]"


def log_step(message: str) -> None:
    """输出简洁的流程阶段提示。"""
    print(f"{PREFIX} {message}")


def warn(message: str) -> None:
    """向 stderr 输出非致命警告。"""
    print(f"Warning: {message}", file=sys.stderr)


def echo_cmd(cmd: list[str], *, verbose: bool) -> None:
    if verbose:
        print(f"+ {' '.join(cmd)}")
