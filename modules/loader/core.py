"""Loader module — reads TCK test-case files into TestSuite values.

A test-case file is an XML ``testCases`` document naming the model under
test and listing ``testCase`` elements with ``inputNode`` bindings and
``resultNode`` expectations. Values appear as a simple ``value`` (typed with
``xsi:type``), as nested ``component`` entries (a context) or as a
``list`` of ``item`` elements; ``xsi:nil="true"`` marks null.

Elements are matched by local name, so any namespace prefix works. A
malformed descriptor raises LoaderError before any case reaches the runner.

This module depends only on domain/ types and has zero external imports beyond stdlib.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from pathlib import Path

from domain.errors import ConfigError, LoaderError
from domain.models import (
    ArtifactKind,
    ExpectedOutput,
    InputBinding,
    ModelHandle,
    TestCase,
    TestSuite,
)
from domain.values import Value
from modules.lexical.core import parse_typed

logger = logging.getLogger("dmntck.loader")

_XSI = "{http://www.w3.org/2001/XMLSchema-instance}"

_ARTIFACT_KINDS = {kind.value: kind for kind in ArtifactKind}


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(node: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in node if _local(child.tag) == name]


def _child(node: ET.Element, name: str) -> ET.Element | None:
    for child in node:
        if _local(child.tag) == name:
            return child
    return None


def _child_text(node: ET.Element, name: str) -> str | None:
    child = _child(node, name)
    if child is None or child.text is None:
        return None
    return child.text.strip()


def _is_nil(node: ET.Element) -> bool:
    return node.get(f"{_XSI}nil") == "true"


class _Parser:
    """Parses one document; carries the source name for error messages."""

    def __init__(self, source: str | None, model_dir: Path | None) -> None:
        self._source = source
        self._model_dir = model_dir

    def error(self, message: str) -> LoaderError:
        return LoaderError(message, source=self._source)

    # -- Values -------------------------------------------------------------

    def value_holder(self, node: ET.Element) -> Value | None:
        """Parse the value held by ``node``; None when it holds nothing."""
        value_node = _child(node, "value")
        if value_node is not None:
            return self.simple(value_node)
        components = _children(node, "component")
        if components:
            return self.components(components)
        list_node = _child(node, "list")
        if list_node is not None:
            return self.list_value(list_node)
        return None

    def simple(self, node: ET.Element) -> Value:
        if _is_nil(node):
            return Value.null()
        xsd_type = node.get(f"{_XSI}type")
        try:
            return parse_typed(xsd_type, node.text)
        except ValueError as exc:
            raise self.error(str(exc)) from exc

    def components(self, nodes: list[ET.Element]) -> Value:
        entries: list[tuple[str, Value]] = []
        for node in nodes:
            name = node.get("name")
            if name is None:
                msg = "component without a name"
                raise self.error(msg)
            if _is_nil(node):
                entries.append((name, Value.null()))
                continue
            value = self.value_holder(node)
            entries.append((name, value if value is not None else Value.null()))
        try:
            return Value.context(entries)
        except ValueError as exc:
            raise self.error(str(exc)) from exc

    def list_value(self, node: ET.Element) -> Value:
        if _is_nil(node):
            return Value.null()
        items: list[Value] = []
        for item in _children(node, "item"):
            value = None if _is_nil(item) else self.value_holder(item)
            items.append(value if value is not None else Value.null())
        return Value.list(items)

    # -- Test cases ---------------------------------------------------------

    def required_attribute(self, node: ET.Element, name: str) -> str:
        value = node.get(name)
        if value is None:
            msg = f"<{_local(node.tag)}> requires attribute '{name}'"
            raise self.error(msg)
        return value

    def model_handle(self, model_name: str) -> ModelHandle:
        path: str | None = None
        if self._model_dir is not None:
            candidate = self._model_dir / model_name
            if candidate.is_file():
                path = str(candidate)
        return ModelHandle(name=model_name, path=path)

    def input_nodes(self, node: ET.Element) -> tuple[InputBinding, ...]:
        bindings: list[InputBinding] = []
        for input_node in _children(node, "inputNode"):
            name = self.required_attribute(input_node, "name")
            value = None if _is_nil(input_node) else self.value_holder(input_node)
            bindings.append(InputBinding(name, value if value is not None else Value.null()))
        return tuple(bindings)

    def result_nodes(self, node: ET.Element, case_id: str) -> tuple[ExpectedOutput, ...]:
        outputs: list[ExpectedOutput] = []
        for result_node in _children(node, "resultNode"):
            name = self.required_attribute(result_node, "name")
            error_result = result_node.get("errorResult") == "true"
            expected_node = _child(result_node, "expected")
            expected = None if expected_node is None else self.value_holder(expected_node)
            if expected is None:
                if not error_result:
                    msg = f"result node '{name}' of test case '{case_id}' has no expected value"
                    raise self.error(msg)
                expected = Value.null()
            outputs.append(
                ExpectedOutput(
                    name=name,
                    value=expected,
                    artifact=result_node.get("type"),
                    error_result=error_result,
                )
            )
        return tuple(outputs)

    def test_case(
        self,
        node: ET.Element,
        index: int,
        model: ModelHandle,
        labels: tuple[str, ...],
    ) -> TestCase:
        case_id = node.get("id") or f"{index + 1:03d}"
        expected = self.result_nodes(node, case_id)
        if not expected:
            msg = f"test case '{case_id}' declares no result nodes"
            raise self.error(msg)
        kind = _ARTIFACT_KINDS.get(node.get("type") or "", ArtifactKind.DECISION)
        return TestCase(
            case_id=case_id,
            model=model,
            inputs=self.input_nodes(node),
            expected=expected,
            expects_failure=all(output.error_result for output in expected),
            name=node.get("name"),
            description=_child_text(node, "description"),
            kind=kind,
            invocable_name=node.get("invocableName"),
            labels=labels,
            source=self._source,
        )

    def document(self, root: ET.Element) -> TestSuite:
        if _local(root.tag) != "testCases":
            msg = f"expected root element <testCases>, found <{_local(root.tag)}>"
            raise self.error(msg)
        model_name = _child_text(root, "modelName")
        if not model_name:
            msg = "missing <modelName>"
            raise self.error(msg)
        labels: list[str] = []
        labels_node = _child(root, "labels")
        if labels_node is not None:
            for label in _children(labels_node, "label"):
                if label.text is None:
                    msg = "<label> requires text content"
                    raise self.error(msg)
                labels.append(label.text.strip())
        model = self.model_handle(model_name)
        label_tuple = tuple(labels)
        cases = tuple(
            self.test_case(node, index, model, label_tuple)
            for index, node in enumerate(_children(root, "testCase"))
        )
        return TestSuite(
            model_name=model_name,
            labels=label_tuple,
            cases=cases,
            source=self._source,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_test_cases(
    text: str,
    *,
    source: str | None = None,
    model_dir: Path | None = None,
) -> TestSuite:
    """Parse the XML text of a test-case file.

    Args:
        text: Document content.
        source: Name used in error messages and recorded on every case.
        model_dir: Directory searched for the model file named by
            ``<modelName>``; when found, its path is set on the ModelHandle.

    Raises:
        LoaderError: the document is not well-formed or not a valid
            test-case descriptor.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise LoaderError(f"parsing XML failed: {exc}", source=source) from exc
    suite = _Parser(source, model_dir).document(root)
    logger.debug("Parsed %d test case(s) from %s", len(suite.cases), source or "<string>")
    return suite


def load_test_cases(path: Path) -> TestSuite:
    """Read and parse a test-case file; the model is looked up beside it."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LoaderError(f"reading file failed: {exc}", source=str(path)) from exc
    return parse_test_cases(text, source=str(path), model_dir=path.parent)


def discover_files(root: Path, extension: str, pattern: str = "") -> list[Path]:
    """Find files with ``extension`` under ``root``, recursively and sorted.

    Only files whose absolute path matches the regular expression ``pattern``
    are kept; an empty pattern keeps everything.

    Raises:
        ConfigError: ``pattern`` is not a valid regular expression.
    """
    try:
        matcher = re.compile(pattern) if pattern else None
    except re.error as exc:
        msg = f"invalid file name pattern {pattern!r}: {exc}"
        raise ConfigError(msg) from exc
    suffix = f".{extension.lstrip('.')}"
    files: list[Path] = []
    for candidate in root.rglob(f"*{suffix}"):
        if not candidate.is_file():
            continue
        resolved = candidate.resolve()
        if matcher is None or matcher.search(str(resolved)):
            files.append(resolved)
    files.sort()
    logger.debug("Discovered %d *%s file(s) under %s", len(files), suffix, root)
    return files
