"""Heuristic lookup of the colour texture that belongs to a 3D model file.

Game asset packs rarely reference their textures in a way that survives being
copied around, so the resolver searches the usual places instead:

1. the model's directory, conventional texture subdirectories below it, the
   parent directory and the same subdirectories below the parent;
2. inside each directory, well-known file names derived from the model name
   and then generic names such as ``diffuse.png``;
3. failing that, every image in the directory is scored by its name and the
   best positive candidate (or simply the first image) is returned.

The first directory that yields any image wins, so directory order acts as
the primary priority and file-name order as the tie-break within it.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .utils.paths import iter_unique_paths

__all__ = [
    "DEFAULT_SCORING",
    "TEXTURE_EXTENSIONS",
    "TEXTURE_SUBDIRECTORIES",
    "TextureCandidate",
    "TextureScoring",
    "candidate_directories",
    "candidate_filenames",
    "rank_textures",
    "resolve_texture",
    "score_texture_name",
]

logger = logging.getLogger(__name__)

TEXTURE_EXTENSIONS: Final[tuple[str, ...]] = (".png", ".jpg", ".jpeg", ".tga", ".bmp")
"""Raster formats considered as model textures, in preference order."""

TEXTURE_SUBDIRECTORIES: Final[tuple[str, ...]] = (
    "Textures",
    "textures",
    "Materials",
    "materials",
    "Maps",
    "maps",
    "Images",
    "images",
)

_NAME_SUFFIXES: Final[tuple[str, ...]] = (
    "",
    "_diffuse",
    "_albedo",
    "_color",
    "_colormap",
    "_texture",
    "_map",
)

_GENERIC_NAMES: Final[tuple[str, ...]] = (
    "diffuse",
    "albedo",
    "color",
    "colormap",
    "texture",
    "base",
    "material",
    "map",
)


@dataclass(frozen=True, slots=True)
class TextureScoring:
    """Weights used to rank image files when no well-known name matches."""

    exact_name: int = 100
    contains_name: int = 50
    keyword_bonuses: Mapping[str, int] = field(
        default_factory=lambda: {
            "diffuse": 30,
            "albedo": 25,
            "color": 20,
            "texture": 15,
            "material": 10,
            "map": 8,
            "base": 5,
        }
    )
    keyword_penalties: Mapping[str, int] = field(
        default_factory=lambda: {
            "normal": 20,
            "bump": 20,
            "height": 15,
            "rough": 15,
            "metal": 15,
            "spec": 10,
            "ao": 10,
            "occlusion": 10,
        }
    )
    format_bonuses: Mapping[str, int] = field(
        default_factory=lambda: {".png": 3, ".jpg": 2, ".jpeg": 2}
    )


DEFAULT_SCORING: Final[TextureScoring] = TextureScoring()


@dataclass(frozen=True, slots=True)
class TextureCandidate:
    """An image file considered during resolution together with its score."""

    path: Path
    score: int


def candidate_directories(model_path: Path) -> list[Path]:
    """Return the directories searched for *model_path*, highest priority first."""

    model_dir = model_path.parent
    parent_dir = model_dir.parent

    def around(base: Path) -> Iterator[Path]:
        yield base
        for name in TEXTURE_SUBDIRECTORIES:
            yield base / name

    return list(iter_unique_paths([*around(model_dir), *around(parent_dir)]))


def candidate_filenames(model_name: str) -> list[str]:
    """Return well-known texture file names for *model_name* in priority order."""

    names: list[str] = []
    for suffix in _NAME_SUFFIXES:
        for variant in dict.fromkeys((suffix, suffix.title())):
            stem = f"{model_name}{variant}"
            names.extend(f"{stem}{extension}" for extension in TEXTURE_EXTENSIONS)

    for generic in _GENERIC_NAMES:
        variants = [generic, generic.capitalize()]
        if generic == "colormap":
            variants.append("ColorMap")
        for variant in dict.fromkeys(variants):
            names.extend(f"{variant}{extension}" for extension in TEXTURE_EXTENSIONS)

    return list(dict.fromkeys(names))


def score_texture_name(
    filename: str,
    model_name: str,
    scoring: TextureScoring = DEFAULT_SCORING,
) -> int:
    """Return how likely *filename* is the colour map of *model_name*."""

    lowered = filename.lower()
    stem, extension = os.path.splitext(lowered)
    model_lower = model_name.lower()

    score = 0
    if stem == model_lower:
        score += scoring.exact_name
    if model_lower and model_lower in lowered:
        score += scoring.contains_name
    for keyword, bonus in scoring.keyword_bonuses.items():
        if keyword in lowered:
            score += bonus
    score += scoring.format_bonuses.get(extension, 0)
    for keyword, penalty in scoring.keyword_penalties.items():
        if keyword in lowered:
            score -= penalty
    return score


def rank_textures(
    directory: Path,
    model_name: str,
    scoring: TextureScoring = DEFAULT_SCORING,
) -> list[TextureCandidate]:
    """Score every texture-format image in *directory*, best first.

    Equal scores keep file-name order. :class:`OSError` propagates so callers
    can decide how to treat unreadable directories.
    """

    with os.scandir(directory) as iterator:
        filenames = sorted(
            entry.name
            for entry in iterator
            if os.path.splitext(entry.name)[1].lower() in TEXTURE_EXTENSIONS and entry.is_file()
        )

    candidates = [
        TextureCandidate(directory / name, score_texture_name(name, model_name, scoring))
        for name in filenames
    ]
    candidates.sort(key=lambda candidate: candidate.score, reverse=True)
    return candidates


def resolve_texture(
    model_path: str | os.PathLike[str],
    *,
    scoring: TextureScoring = DEFAULT_SCORING,
) -> Path | None:
    """Return the best colour texture for *model_path*, or ``None``.

    Unreadable directories are logged and skipped so a single permission
    problem never aborts the whole search.
    """

    model = Path(model_path)
    model_name = model.stem
    filenames = candidate_filenames(model_name)

    for directory in candidate_directories(model):
        if not directory.is_dir():
            continue

        exact = _first_existing(directory, filenames)
        if exact is not None:
            logger.debug("Texture for %s found by name: %s", model, exact)
            return exact

        try:
            ranked = rank_textures(directory, model_name, scoring)
        except OSError as exc:
            logger.warning("Skipping unreadable texture directory %s: %s", directory, exc)
            continue

        if not ranked:
            continue

        best = ranked[0]
        if best.score > 0:
            logger.debug("Texture for %s chosen by score %d: %s", model, best.score, best.path)
            return best.path

        fallback = min(ranked, key=lambda candidate: candidate.path.name).path
        logger.debug("Texture for %s falls back to first image: %s", model, fallback)
        return fallback

    logger.debug("No texture found for %s", model)
    return None


def _first_existing(directory: Path, filenames: Sequence[str]) -> Path | None:
    for name in filenames:
        candidate = directory / name
        try:
            if candidate.is_file():
                return candidate
        except OSError:
            continue
    return None
