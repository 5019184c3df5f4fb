"""Android API level to marketing name lookup used in device info blocks."""

from __future__ import annotations

_NAMES: dict[int, str] = {
    3: "Cupcake",
    4: "Donut",
    5: "Eclair",
    6: "Eclair",
    7: "Eclair",
    8: "Froyo",
    9: "Gingerbread",
    10: "Gingerbread",
    11: "Honeycomb",
    12: "Honeycomb",
    13: "Honeycomb",
    14: "Ice Cream Sandwich",
    15: "Ice Cream Sandwich",
    16: "Jelly Bean",
    17: "Jelly Bean",
    18: "Jelly Bean",
    19: "KitKat",
    20: "KitKat Wear",
    21: "Lollipop",
    22: "Lollipop",
    23: "Marshmallow",
    24: "Nougat",
    25: "Nougat",
    26: "Oreo",
    27: "Oreo",
    28: "Pie",
    29: "Android 10",
    30: "Android 11",
    31: "Android 12",
    32: "Android 12L",
    33: "Android 13",
    34: "Android 14",
    35: "Android 15",
    36: "Android 16",
}


def version_name(sdk_int: int) -> str:
    return _NAMES.get(sdk_int, "Unknown")
