"""Observation id and job id parsing."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

_OBSID_MIN = 1_000_000_000
_OBSID_MAX = 10_000_000_000

JobId = int


class InvalidObsidError(ValueError):
    """Raised when an integer is not a 10-digit MWA obsid."""


class IdentifierParseError(ValueError):
    """Raised when job ids, obsids or key-value text cannot be parsed."""


class Obsid(int):
    """An MWA observation id: an integer with exactly 10 digits."""

    def __new__(cls, value: int) -> "Obsid":
        if isinstance(value, bool) or not _OBSID_MIN <= int(value) < _OBSID_MAX:
            raise InvalidObsidError(
                f"'{value}' doesn't have 10 digits and cannot be used as an MWA obsid"
            )
        return super().__new__(cls, value)

    @classmethod
    def validate(cls, value: int) -> "Obsid":
        return cls(value)

    @classmethod
    def parse(cls, text: str) -> "Obsid":
        """Parse a decimal string into an obsid."""

        try:
            value = int(text.strip())
        except ValueError as exc:
            raise InvalidObsidError(f"'{text}' is not an integer obsid") from exc
        return cls(value)

    @classmethod
    def is_valid(cls, value: int) -> bool:
        return _OBSID_MIN <= value < _OBSID_MAX

    def __str__(self) -> str:
        return int.__repr__(self)

    def __repr__(self) -> str:
        return f"Obsid({int(self)})"


def parse_jobid_or_obsid(text: str) -> Obsid | JobId | None:
    """Classify an integer token: 10 digits is an obsid, anything else a job id."""

    try:
        value = int(text)
    except ValueError:
        return None
    if Obsid.is_valid(value):
        return Obsid(value)
    return value


def parse_jobids_and_obsids_from_file(path: str | Path) -> tuple[list[JobId], list[Obsid]]:
    """Read whitespace-separated job ids and obsids from a file."""

    job_ids: list[JobId] = []
    obsids: list[Obsid] = []
    with Path(path).open(encoding="utf-8") as handle:
        for line in handle:
            for token in line.split():
                parsed = parse_jobid_or_obsid(token)
                if parsed is None:
                    raise IdentifierParseError(
                        f"'{token}' in file {path} could not be parsed as an int."
                    )
                if isinstance(parsed, Obsid):
                    obsids.append(parsed)
                else:
                    job_ids.append(parsed)
    return job_ids, obsids


def parse_many_jobids_or_obsids(values: Iterable[str]) -> tuple[list[JobId], list[Obsid]]:
    """Split job ids and obsids; values that are not integers are read as files."""

    job_ids: list[JobId] = []
    obsids: list[Obsid] = []
    for value in values:
        parsed = parse_jobid_or_obsid(value)
        if parsed is None:
            file_job_ids, file_obsids = parse_jobids_and_obsids_from_file(value)
            job_ids.extend(file_job_ids)
            obsids.extend(file_obsids)
        elif isinstance(parsed, Obsid):
            obsids.append(parsed)
        else:
            job_ids.append(parsed)
    return job_ids, obsids


def parse_key_value_pairs(text: str) -> dict[str, str]:
    """Parse ``"a=1, b=2"`` into a mapping."""

    pairs: dict[str, str] = {}
    for pair in text.split(","):
        items = pair.split("=")
        if len(items) != 2:
            raise IdentifierParseError(f"Could not parse {pair} into a key-value pair.")
        key, value = (item.strip() for item in items)
        pairs[key] = value
    return pairs


__all__ = [
    "IdentifierParseError",
    "InvalidObsidError",
    "JobId",
    "Obsid",
    "parse_jobid_or_obsid",
    "parse_jobids_and_obsids_from_file",
    "parse_key_value_pairs",
    "parse_many_jobids_or_obsids",
]
