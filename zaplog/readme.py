"""Render the README template with benchmark comparison tables."""

from __future__ import annotations

import argparse
import re
import subprocess
import sys
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Sequence

LIBRARY_NAME_TO_MARKDOWN_NAME = {
    "Zap": ":zap: zap",
    "Zap.Sugar": ":zap: zap (sugared)",
    "stdlib.Println": "standard library",
    "sirupsen/logrus": "logrus",
    "go-kit/kit/log": "go-kit",
    "inconshreveable/log15": "log15",
    "apex/log": "apex/log",
    "rs/zerolog": "zerolog",
}

BENCHMARK_NAMES = (
    "BenchmarkAddingFields",
    "BenchmarkAccumulatedContext",
    "BenchmarkWithoutFields",
)

_TABLE_HEADER = (
    "| Package | Time | Time % to zap | Objects Allocated |",
    "| :------ | :--: | :-----------: | :---------------: |",
)

_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_ACTION = re.compile(r"\{\{\s*(.*?)\s*\}\}", re.S)
_FIELD = re.compile(r"\.([A-Za-z_]\w*)")


def _parse_duration(text: str) -> int:
    """Parse a duration such as ``1.5µs`` or ``2m3s`` into nanoseconds."""
    s = text
    sign = 1
    if s.startswith(("-", "+")):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return 0
    if not s:
        raise ValueError(f'time: invalid duration "{text}"')
    total = Decimal(0)
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if m is None:
            raise ValueError(f'time: invalid duration "{text}"')
        total += Decimal(m.group(1)) * _UNITS[m.group(2)]
        pos = m.end()
    return sign * int(total)


def _percent(val: int, baseline: int) -> str:
    if baseline == 0:
        if val == 0:
            return "+NaN%"
        return "+Inf%" if val > 0 else "-Inf%"
    return f"{(val / baseline) * 100 - 100:+.0f}%"


@dataclass
class BenchmarkRow:
    """One library's result in a benchmark, with the zap baseline."""

    name: str
    time: int
    allocated_bytes: int
    allocated_objects: int
    zap_time: int = 0
    zap_allocated_bytes: int = 0
    zap_allocated_objects: int = 0

    def __str__(self) -> str:
        return (
            f"| {self.name} | {self.time} ns/op | "
            f"{_percent(self.time, self.zap_time)} | {self.allocated_objects} allocs/op"
        )


def _row_order(row: BenchmarkRow) -> tuple[bool, int]:
    # Zap rows first, then everything by time.
    return ("zap" not in row.name, row.time)


def find_unique_substring(lines: Sequence[str], substring: str) -> str:
    """Return the only line containing ``substring``, or ``""`` if none does.

    Raises ``ValueError`` if more than one line contains it.
    """
    found = ""
    for line in lines:
        if substring in line:
            if found:
                raise ValueError(f"input has duplicate substring {substring}")
            found = line
    return found


def get_benchmark_row(
    lines: Sequence[str],
    benchmark_name: str,
    library_name: str,
    baseline: BenchmarkRow | None,
) -> BenchmarkRow | None:
    """Parse the result line for one library, or return None if it is absent."""
    line = find_unique_substring(lines, f"{benchmark_name}/{library_name}-")
    if not line:
        return None
    parts = line.split("\t")
    if len(parts) < 5:
        raise ValueError(f"unknown benchmark line: {line}")
    duration = _parse_duration(
        parts[2].strip().removesuffix("/op").replace(" ", "")
    )
    allocated_bytes = int(parts[3].strip().removesuffix(" B/op"))
    allocated_objects = int(parts[4].strip().removesuffix(" allocs/op"))
    row = BenchmarkRow(
        name=LIBRARY_NAME_TO_MARKDOWN_NAME.get(library_name, ""),
        time=duration,
        allocated_bytes=allocated_bytes,
        allocated_objects=allocated_objects,
    )
    if baseline is not None:
        row.zap_time = baseline.time
        row.zap_allocated_bytes = baseline.allocated_bytes
        row.zap_allocated_objects = baseline.allocated_objects
    return row


def _benchmark_output(benchmark_name: str) -> list[str]:
    command = ["go", "test", f"-bench={benchmark_name}", "-benchmem"]
    described = f"'go test -bench=\"{benchmark_name}\"'"
    try:
        proc = subprocess.run(
            command,
            cwd="benchmarks",
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise RuntimeError(f"error running {described}: {exc}") from exc
    if proc.returncode != 0:
        raise RuntimeError(
            f"error running {described}: exit status {proc.returncode}\n{proc.stdout}"
        )
    return proc.stdout.split("\n")


def get_benchmark_rows(benchmark_name: str) -> str:
    """Run a benchmark and return its results as a Markdown table."""
    lines = _benchmark_output(benchmark_name)
    baseline = get_benchmark_row(lines, benchmark_name, "Zap", None)
    rows = [
        row
        for library in LIBRARY_NAME_TO_MARKDOWN_NAME
        if (row := get_benchmark_row(lines, benchmark_name, library, baseline))
        is not None
    ]
    rows.sort(key=_row_order)
    return "\n".join([*_TABLE_HEADER, *(str(row) for row in rows)])


def render_template(template: str, data: Mapping[str, object]) -> str:
    """Replace each ``{{.Name}}`` action in ``template`` with ``data[Name]``.

    Raises ``ValueError`` for unknown names, other actions or an unclosed one.
    """
    out = []
    pos = 0
    for m in _ACTION.finditer(template):
        out.append(template[pos : m.start()])
        action = m.group(1)
        field = _FIELD.fullmatch(action)
        if field is None:
            raise ValueError(f"unsupported template action: {{{{{action}}}}}")
        name = field.group(1)
        if name not in data:
            raise ValueError(f"can't evaluate field {name}")
        out.append(str(data[name]))
        pos = m.end()
    tail = template[pos:]
    if "{{" in tail:
        raise ValueError("unclosed action")
    out.append(tail)
    return "".join(out)


def _template_data() -> dict[str, str]:
    return {name: get_benchmark_rows(name) for name in BENCHMARK_NAMES}


def main(argv=None) -> int:
    """Read a template from stdin and write it, rendered, to stdout."""
    parser = argparse.ArgumentParser(
        description="Render the README template on stdin with benchmark tables."
    )
    parser.parse_args(argv)
    try:
        data = _template_data()
        template = sys.stdin.read()
        sys.stdout.write(render_template(template, data))
    except (RuntimeError, ValueError, OSError) as exc:
        print(exc, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())