from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .types import Label

# RGB, indexed by label id; larger ids wrap around.
_PALETTE: Tuple[Tuple[int, int, int], ...] = (
    (255, 56, 56),
    (255, 157, 151),
    (255, 112, 31),
    (255, 178, 29),
    (207, 210, 49),
    (72, 249, 10),
    (146, 204, 23),
    (61, 219, 134),
    (26, 147, 52),
    (0, 212, 187),
    (44, 153, 168),
    (0, 194, 255),
    (52, 69, 147),
    (100, 115, 255),
    (0, 24, 236),
    (132, 56, 255),
    (82, 0, 133),
    (203, 56, 255),
    (255, 149, 200),
    (255, 55, 199),
)


def color_for_label_id(label_id: int) -> Tuple[int, int, int]:
    return _PALETTE[label_id % len(_PALETTE)]


def labels_from_names(names: Sequence[str]) -> Tuple[Label, ...]:
    """
    Build dense labels (id == index) with a deterministic color per id.
    """

    return tuple(Label(id=i, name=name, color=color_for_label_id(i)) for i, name in enumerate(names))


def _unquote(value: str) -> str:
    return value.strip().strip("'").strip('"')


def _parse_inline(value: str) -> Dict[int, str]:
    # names: [person, bicycle] or names: {0: person, 1: bicycle}
    body = value.strip()[1:-1]
    items = [item for item in (part.strip() for part in body.split(",")) if item]
    names: Dict[int, str] = {}
    if value.strip().startswith("["):
        for i, item in enumerate(items):
            names[i] = _unquote(item)
        return names
    for item in items:
        if ":" not in item:
            continue
        left, right = item.split(":", 1)
        if left.strip().isdigit():
            names[int(left.strip())] = _unquote(right)
    return names


def load_class_names(metadata_path: str) -> Dict[int, str]:
    """
    Read the `names:` section of an exported model's `metadata.yaml`.

    Understands the forms written by common exporters:

        names:            names:           names: [person, bicycle]
          0: person         - person       names: {0: person, 1: bicycle}
          1: bicycle        - bicycle

    Only the `names` block is read, so no YAML dependency is needed.
    """

    names: Dict[int, str] = {}
    in_names = False
    next_index = 0

    with open(metadata_path, "r", encoding="utf-8") as f:
        for raw in f:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("names:"):
                rest = line[len("names:"):].strip()
                if rest.startswith(("[", "{")) and rest.endswith(("]", "}")):
                    return _parse_inline(rest)
                in_names = True
                continue
            if not in_names:
                continue

            # Left the block: next top-level key.
            if not raw[:1].isspace() and not line.startswith("-"):
                break

            if line.startswith("-"):
                names[next_index] = _unquote(line[1:])
                next_index += 1
                continue

            # "id: label"
            if ":" not in line:
                continue
            left, right = line.split(":", 1)
            if not left.strip().isdigit():
                continue
            names[int(left.strip())] = _unquote(right)

    return names


def names_in_order(names: Dict[int, str]) -> List[str]:
    return [names[i] for i in sorted(names)]
