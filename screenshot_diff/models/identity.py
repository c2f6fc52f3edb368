"""Screenshot identities: hierarchical names mapping to one baseline slot each."""

from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

_SEQUENCED_LABEL = re.compile(r"^(\d{2,})_(.+)$")


def _check_part(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if "\\" in value or value.startswith("/") or ".." in value.split("/"):
        raise ValueError(f"Invalid screenshot name part: {value!r}")
    return value


class Identity(BaseModel):
    """Immutable name of one screenshot: ``section/group/NN_label``."""

    model_config = ConfigDict(frozen=True)

    label: str
    section: Optional[str] = None
    group: Optional[str] = None
    sequence: Optional[int] = None

    @field_validator("label")
    @classmethod
    def _label_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Screenshot label must not be empty")
        if "/" in v:
            raise ValueError(f"Screenshot label must not contain '/': {v!r}")
        return _check_part(v)

    @field_validator("section", "group", mode="before")
    @classmethod
    def _blank_as_none(cls, v):
        if v is not None and str(v) == "":
            return None
        return _check_part(None if v is None else str(v))

    @property
    def group_parts(self) -> list[str]:
        return [p for p in (self.section, self.group) if p]

    @property
    def file_label(self) -> str:
        if self.sequence is None:
            return self.label
        return f"{self.sequence:02d}_{self.label}"

    @property
    def name(self) -> str:
        return "/".join(self.group_parts + [self.file_label])

    def __str__(self) -> str:
        return self.name

    @classmethod
    def parse(cls, name: str) -> "Identity":
        """Build an identity back from its ``name``.

        A numbered label (``01_form``) implies a group; a single directory
        without a numbered label is read as a section.
        """
        parts = [p for p in name.strip("/").split("/") if p]
        if not parts:
            raise ValueError("Screenshot name must not be empty")
        if len(parts) > 3:
            raise ValueError(f"Screenshot name has too many levels: {name!r}")
        *dirs, last = parts
        sequence = None
        label = last
        match = _SEQUENCED_LABEL.match(last)
        if match and dirs:
            sequence = int(match.group(1))
            label = match.group(2)
        if len(dirs) == 2:
            return cls(label=label, section=dirs[0], group=dirs[1], sequence=sequence)
        if len(dirs) == 1:
            if sequence is not None:
                return cls(label=label, group=dirs[0], sequence=sequence)
            return cls(label=label, section=dirs[0])
        return cls(label=label)


class IdentityBuilder(BaseModel):
    """Immutable naming state threaded explicitly between screenshot calls.

    ``in_group`` restarts the sequence at 1, ``build`` hands out the next
    identity together with the builder to use for the following screenshot.
    """

    model_config = ConfigDict(frozen=True)

    section: Optional[str] = None
    group: Optional[str] = None
    next_sequence: Optional[int] = None

    def in_section(self, name: str | None) -> "IdentityBuilder":
        return self.model_copy(update={"section": name or None})

    def in_group(self, name: str | None) -> "IdentityBuilder":
        return self.model_copy(update={"group": name or None, "next_sequence": 1})

    def build(self, label: str) -> tuple[Identity, "IdentityBuilder"]:
        identity = Identity(
            label=label,
            section=self.section,
            group=self.group,
            sequence=self.next_sequence,
        )
        if self.next_sequence is None:
            return identity, self
        return identity, self.model_copy(update={"next_sequence": self.next_sequence + 1})

    @property
    def group_identity_parts(self) -> list[str]:
        return [p for p in (self.section, self.group) if p]
