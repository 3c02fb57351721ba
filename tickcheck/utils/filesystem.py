#!filepath: tickcheck/utils/filesystem.py
from pathlib import Path
from typing import Iterable, List, Optional

from tickcheck.utils.logger import logs


class FileSystem:
    """
    统一文件系统工具
    - 自动创建目录
    - 安全写入文件（临时文件 → rename）
    - 扫描目录（可递归）
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        """
        创建目录（如果不存在）
        """
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] created dir: {p}")
        return p

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> None:
        """
        原子写入（避免部分写入导致文件损坏）
        写入步骤：
            1) 先写入 tmp 文件
            2) replace → 正式文件
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        tmp_path = path.with_suffix(path.suffix + ".tmp")

        with open(tmp_path, "wb") as f:
            f.write(data)

        tmp_path.replace(path)
        logs.debug(f"[FS] atomic write done: {path}")

    @staticmethod
    def safe_write_text(path: str | Path, text: str) -> None:
        FileSystem.safe_write(path, text.encode("utf-8"))

    @staticmethod
    def scan_dir(
        path: str | Path,
        suffixes: Optional[Iterable[str]] = None,
        recursive: bool = False,
    ) -> List[Path]:
        """
        返回目录下所有文件（可按后缀过滤，可递归）
        """
        p = Path(path)
        if not p.exists():
            return []

        wanted = set(suffixes) if suffixes is not None else None
        candidates = p.rglob("*") if recursive else p.iterdir()

        files = []
        for f in candidates:
            if f.is_file():
                if wanted is None or f.suffix in wanted:
                    files.append(f)

        return sorted(files)
