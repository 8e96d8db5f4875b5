"""Pipeline plans selected once per invocation from the trigger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .schemas.release import TriggerContext
from .trigger import release_name_for_tag, release_tag_from_ref


@dataclass(frozen=True)
class VerifyPlan:
    """Verification only; no build, package or publish stage runs."""

    ref: str

    @property
    def releases(self) -> bool:
        return False

    def to_dict(self) -> dict[str, object]:
        return {"kind": "verify", "ref": self.ref}


@dataclass(frozen=True)
class ReleasePlan:
    """Verification followed by build, package and publish for ``tag_name``."""

    ref: str
    tag_name: str
    release_name: str
    draft: bool = True

    @property
    def releases(self) -> bool:
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "kind": "release",
            "ref": self.ref,
            "tag_name": self.tag_name,
            "release_name": self.release_name,
            "draft": self.draft,
        }


PipelinePlan = Union[VerifyPlan, ReleasePlan]


def build_plan(trigger: TriggerContext) -> PipelinePlan:
    if not trigger.is_tagged_release:
        return VerifyPlan(ref=trigger.ref)
    tag = release_tag_from_ref(trigger.ref)
    return ReleasePlan(ref=trigger.ref, tag_name=tag, release_name=release_name_for_tag(tag))
