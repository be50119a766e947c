"""YAML encoder shared by the NVR and compose renderers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import yaml


class DocumentDumper(yaml.SafeDumper):
    """SafeDumper that indents nested lists and writes ``None`` as an empty value."""

    def increase_indent(self, flow: bool = False, indentless: bool = False) -> Any:
        return super().increase_indent(flow, False)


def _represent_none(dumper: yaml.SafeDumper, _value: None) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:null", "")


DocumentDumper.add_representer(type(None), _represent_none)


def dump_document(data: dict[str, Any], *, header: Sequence[str] = ()) -> str:
    """Serialize ``data`` in insertion order, preceded by ``# header`` lines."""

    body = yaml.dump(
        data,
        Dumper=DocumentDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
        width=4096,
    )
    comments = "".join(f"# {line}\n" if line else "#\n" for line in header)
    if comments:
        comments += "\n"
    return comments + body


__all__ = ["DocumentDumper", "dump_document"]
