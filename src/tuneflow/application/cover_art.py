"""Cover-art compliance validation and checklist mapping."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from PIL import Image, UnidentifiedImageError

from tuneflow.application.ports import (
    ComplianceDefect,
    ComplianceReport,
    ComplianceStatus,
    CoverArtCompliancePort,
    CoverArtContext,
)

logger = logging.getLogger(__name__)

MAX_COVER_ART_BYTES = 10 * 1024 * 1024
MIN_COVER_ART_DIMENSION = 1000


class CoverArtState(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    VALIDATING = "validating"
    ACCEPTED = "accepted"
    WARNING = "warning"
    REJECTED = "rejected"


class ChecklistStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ChecklistRequirement:
    key: str
    label: str
    defect_codes: frozenset[str]


COVER_ART_REQUIREMENTS: tuple[ChecklistRequirement, ...] = (
    ChecklistRequirement(
        "resolution",
        "At least 3000 x 3000 pixels",
        frozenset({"LOW_RESOLUTION", "IMAGE_TOO_SMALL"}),
    ),
    ChecklistRequirement(
        "square",
        "Square aspect ratio (1:1)",
        frozenset({"NOT_SQUARE", "INVALID_ASPECT_RATIO"}),
    ),
    ChecklistRequirement(
        "color_space",
        "RGB color space",
        frozenset({"INVALID_COLOR_SPACE", "NOT_RGB", "CMYK_COLOR_SPACE"}),
    ),
    ChecklistRequirement(
        "full_bleed",
        "Full bleed, no borders or watermarks",
        frozenset({"BORDERS_DETECTED", "NOT_FULL_BLEED", "WATERMARK_DETECTED"}),
    ),
    ChecklistRequirement(
        "metadata_match",
        "Artist name and title match the release",
        frozenset({"ARTIST_NAME_MISMATCH", "TITLE_MISMATCH", "MISLEADING_TEXT", "FEATURED_ARTIST_MISMATCH"}),
    ),
    ChecklistRequirement(
        "prohibited_content",
        "No prohibited content, URLs or social handles",
        frozenset({"PROHIBITED_CONTENT", "EXPLICIT_CONTENT", "SOCIAL_HANDLE_DETECTED", "URL_DETECTED", "PRICING_TEXT"}),
    ),
    ChecklistRequirement(
        "sharpness",
        "Not blurry or pixelated",
        frozenset({"BLURRY_IMAGE", "PIXELATED_IMAGE"}),
    ),
)


@dataclass(frozen=True, slots=True)
class ChecklistItem:
    requirement: ChecklistRequirement
    status: ChecklistStatus = ChecklistStatus.PENDING
    defects: tuple[ComplianceDefect, ...] = ()

    @property
    def key(self) -> str:
        return self.requirement.key

    def as_dict(self) -> dict[str, object]:
        return {
            "key": self.requirement.key,
            "label": self.requirement.label,
            "status": self.status.value,
            "messages": [defect.message for defect in self.defects],
        }


def pending_checklist() -> tuple[ChecklistItem, ...]:
    return tuple(ChecklistItem(requirement) for requirement in COVER_ART_REQUIREMENTS)


def build_checklist(report: ComplianceReport | None) -> tuple[ChecklistItem, ...]:
    """Map a completed report onto the fixed requirements; ``None`` means no check has completed."""

    if report is None:
        return pending_checklist()
    items = []
    for requirement in COVER_ART_REQUIREMENTS:
        matching = tuple(defect for defect in report.defects if defect.code.upper() in requirement.defect_codes)
        status = ChecklistStatus.ERROR if matching else ChecklistStatus.SUCCESS
        items.append(ChecklistItem(requirement, status, matching))
    return tuple(items)


@dataclass(frozen=True, slots=True)
class CoverArtInputError(ValueError):
    """Local pre-check failure; the compliance collaborator was never called."""

    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class CoverArtServiceError(RuntimeError):
    """Raised when the compliance collaborator cannot produce a verdict."""

    def __init__(self, message: str, *, code: str = "compliance_unavailable") -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


@dataclass(frozen=True, slots=True)
class LocalImageCheck:
    """Advisory result of decoding the image locally."""

    width: int | None
    height: int | None
    meets_minimum: bool
    notice: str | None = None


def precheck_image(
    image: bytes,
    *,
    content_type: str,
    max_bytes: int = MAX_COVER_ART_BYTES,
    min_dimension: int = MIN_COVER_ART_DIMENSION,
) -> LocalImageCheck:
    if not content_type.lower().startswith("image/"):
        raise CoverArtInputError("not_an_image", "Please select an image file.")
    if len(image) > max_bytes:
        raise CoverArtInputError(
            "image_too_large",
            f"Image must be smaller than {max_bytes // (1024 * 1024)}MB.",
        )

    try:
        with Image.open(io.BytesIO(image)) as decoded:
            width, height = decoded.size
    except (UnidentifiedImageError, OSError):
        logger.info("Cover art could not be decoded locally; deferring to remote check.")
        return LocalImageCheck(None, None, meets_minimum=False, notice="Image could not be read locally.")

    if width < min_dimension or height < min_dimension:
        return LocalImageCheck(
            width,
            height,
            meets_minimum=False,
            notice=f"Image dimensions must be at least {min_dimension}x{min_dimension} pixels.",
        )
    return LocalImageCheck(width, height, meets_minimum=True)


_VERDICT_STATES = {
    ComplianceStatus.ACCEPTED: CoverArtState.ACCEPTED,
    ComplianceStatus.WARNING: CoverArtState.WARNING,
    ComplianceStatus.REJECTED: CoverArtState.REJECTED,
}


@dataclass(frozen=True, slots=True)
class CoverArtOutcome:
    state: CoverArtState
    checklist: tuple[ChecklistItem, ...]
    report: ComplianceReport
    local_check: LocalImageCheck

    @property
    def blocks_upload(self) -> bool:
        return self.state is CoverArtState.REJECTED

    @property
    def notice(self) -> str | None:
        if self.state is CoverArtState.WARNING:
            return "Cover art was accepted with warnings; review the checklist before submitting."
        if self.state is CoverArtState.REJECTED:
            return "Cover art was rejected; upload a new image."
        return None


StateListener = Callable[[CoverArtState], None]


class CoverArtComplianceValidator:
    """Tracks one cover-art attempt from file selection to verdict.

    ``uploading`` covers sending the image to the compliance collaborator and
    ``validating`` covers interpreting its response.
    """

    def __init__(
        self,
        compliance: CoverArtCompliancePort,
        *,
        max_bytes: int = MAX_COVER_ART_BYTES,
        min_dimension: int = MIN_COVER_ART_DIMENSION,
        on_state: StateListener | None = None,
    ) -> None:
        self.compliance = compliance
        self.max_bytes = max_bytes
        self.min_dimension = min_dimension
        self.on_state = on_state
        self.state = CoverArtState.PENDING
        self.checklist = pending_checklist()
        self.report: ComplianceReport | None = None

    @property
    def is_acceptable(self) -> bool:
        return self.state in (CoverArtState.ACCEPTED, CoverArtState.WARNING)

    def reset(self) -> None:
        self.report = None
        self.checklist = pending_checklist()
        self._transition(CoverArtState.PENDING)

    async def check(
        self,
        image: bytes,
        *,
        file_name: str,
        content_type: str,
        context: CoverArtContext,
    ) -> CoverArtOutcome:
        local_check = precheck_image(
            image,
            content_type=content_type,
            max_bytes=self.max_bytes,
            min_dimension=self.min_dimension,
        )
        self.reset()
        if local_check.notice:
            logger.info("Cover art local check notice", extra={"file_name": file_name, "notice": local_check.notice})

        self._transition(CoverArtState.UPLOADING)
        try:
            report = await self.compliance.validate(image, file_name=file_name, content_type=content_type, context=context)
        except CoverArtServiceError:
            self._transition(CoverArtState.PENDING)
            raise
        except Exception as error:
            self._transition(CoverArtState.PENDING)
            raise CoverArtServiceError("Cover art validation service is unavailable.") from error

        self._transition(CoverArtState.VALIDATING)
        self.report = report
        self.checklist = build_checklist(report)
        self._transition(_VERDICT_STATES[report.status])
        logger.info(
            "Cover art validated",
            extra={"file_name": file_name, "status": report.status.value, "defects": [d.code for d in report.defects]},
        )
        return CoverArtOutcome(self.state, self.checklist, report, local_check)

    def _transition(self, state: CoverArtState) -> None:
        self.state = state
        if self.on_state is not None:
            self.on_state(state)
