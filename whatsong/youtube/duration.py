from typing import Optional

UNIT_SECONDS = {"H": 60 * 60, "M": 60, "S": 1}


def _parse_run(value: str, start: int, end: int) -> int:
    try:
        return int(value[start + 1:end])
    except ValueError:
        return 0


def parse_duration(value: Optional[str]) -> int:
    """
    Total whole seconds in a compact ISO-8601 style duration, e.g. "PT1H2M3S" -> 3723.

    - H / M / S multiply the digit run right before them
    - any other character starts a new run and adds nothing
    - a missing or unparseable run adds 0; this never raises
    """
    if not isinstance(value, str):
        return 0

    total = 0
    mark = 0
    for i, c in enumerate(value):
        if c.isdigit():
            continue
        unit = UNIT_SECONDS.get(c)
        if unit:
            total += _parse_run(value, mark, i) * unit
        mark = i

    return max(total, 0)
