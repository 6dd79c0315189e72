from __future__ import annotations

from enum import StrEnum


class Role(StrEnum):
    FRONT = "front"
    BACK = "back"
    OTHER = "other"


class PackagingHint(StrEnum):
    POUCH = "pouch"
    BOTTLE = "bottle"
    DROPPER_BOTTLE = "dropper-bottle"
    JAR = "jar"
    TUBE = "tube"
    BOX = "box"
    OTHER = "other"


class BrandFlag(StrEnum):
    EQUAL = "equal"
    MISMATCH = "mismatch"
    UNKNOWN_RESCUE = "unknownRescue"
    DISTRIBUTOR_RESCUE = "distributorRescue"
    UNKNOWN = "unknown"


class PairSource(StrEnum):
    AUTO = "auto"
    AUTO_HAIR = "auto-hair"
    MODEL = "model"
    GLOBAL = "global"


# Packaging types distinctive enough to excuse a missing size on the back.
DISTINCTIVE_PACKAGING = frozenset({PackagingHint.DROPPER_BOTTLE, PackagingHint.BOTTLE})
