#!filepath: tickcheck/loader/loader.py
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from tickcheck import logs
from tickcheck.core.model import TestModel
from tickcheck.loader.definition import TestDefinition
from tickcheck.utils.errors import UserInputError, ValidationError
from tickcheck.utils.filesystem import FileSystem

SUFFIXES = (".json", ".yaml", ".yml")


@dataclass
class LoadReport:
    tests: List[TestModel] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)


class TestLoader:
    """
    TestLoader

    职责：
      - 发现测试文件（单个文件 / 目录 / 递归目录）
      - 解析 + 校验 → TestModel
      - 单个文件失败不影响其他文件（ValidationError 记录后继续）
    """

    __test__ = False

    def __init__(self, root: str | Path, recursive: bool = False):
        self.root = Path(root)
        self.recursive = recursive

    # --------------------------------------------------
    def collect_test_files(self) -> List[Path]:
        if self.root.is_file():
            return [self.root]
        if not self.root.exists():
            raise UserInputError(f"test path does not exist: {self.root}")
        return FileSystem.scan_dir(self.root, suffixes=SUFFIXES, recursive=self.recursive)

    @staticmethod
    def read_document(path: Path) -> dict:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            return json.loads(text)
        return yaml.safe_load(text) or {}

    @classmethod
    def load_file(cls, path: str | Path) -> TestModel:
        path = Path(path)
        try:
            raw = cls.read_document(path)
        except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ValidationError(f"cannot parse: {e}", path=path) from e

        if not isinstance(raw, dict):
            raise ValidationError("document root must be an object", path=path)

        try:
            definition = TestDefinition.model_validate(raw)
        except PydanticValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first["loc"])
            raise ValidationError(f"{loc}: {first['msg']}", path=path) from e

        try:
            return definition.to_model(source=path)
        except ValueError as e:
            # BlockSpec.parse 等构造期错误
            raise ValidationError(str(e), path=path, test=definition.name) from e

    def load_all(self, paths: Optional[Iterable[Path]] = None) -> LoadReport:
        report = LoadReport()
        seen: Dict[str, Path] = {}

        for path in (self.collect_test_files() if paths is None else paths):
            try:
                test = self.load_file(path)
            except ValidationError as e:
                logs.warning(f"[Loader] skip {path}: {e}")
                report.errors.append(e)
                continue

            if test.name in seen:
                err = ValidationError(
                    f"duplicate test name (first defined in {seen[test.name]})",
                    path=path, test=test.name,
                )
                logs.warning(f"[Loader] skip {path}: {err}")
                report.errors.append(err)
                continue

            seen[test.name] = path
            report.tests.append(test)

        logs.info(f"[Loader] loaded {len(report.tests)} tests, {len(report.errors)} invalid")
        return report


class TestIndex:
    """
    已加载测试的缓存；reload() 重新扫描磁盘（Recorder save 后触发）
    """

    __test__ = False

    def __init__(self, loader: TestLoader):
        self.loader = loader
        self._tests: Dict[str, TestModel] = {}
        self.errors: List[ValidationError] = []

    def reload(self) -> "TestIndex":
        report = self.loader.load_all()
        self._tests = {t.name: t for t in report.tests}
        self.errors = report.errors
        logs.info(f"[Index] reloaded: {len(self._tests)} tests")
        return self

    @property
    def tests(self) -> List[TestModel]:
        return list(self._tests.values())

    def find(self, name: str) -> Optional[TestModel]:
        """精确匹配优先，其次大小写无关的子串匹配"""
        if name in self._tests:
            return self._tests[name]

        needle = name.lower()
        for test in self._tests.values():
            if test.name.lower() == needle:
                return test
        for test in self._tests.values():
            if needle in test.name.lower():
                return test
        return None

    def search(self, pattern: str) -> List[TestModel]:
        needle = pattern.lower()
        return [t for t in self._tests.values() if needle in t.name.lower()]

    def by_tags(self, tags: Iterable[str]) -> List[TestModel]:
        wanted = set(tags)
        return [t for t in self._tests.values() if t.matches_tags(wanted)]
