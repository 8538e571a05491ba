from enum import Enum
from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field

from auditor.dom.core import Severity
from auditor.dom.models import HeadingNode, LandmarkNode


class Diagnostic(BaseModel):
    """
    A page-level, deduplicated finding for one class of structural violation.
    Title and description are translation keys resolved by the consumer.
    """
    code: str
    category: str  # 'headings' or 'landmarks'
    severity: Severity
    title_key: str
    description_key: str
    count: int = Field(default=1, ge=1)


class AnalysisResult(BaseModel):
    """
    Tree and diagnostics of one structure kind, produced by a single run.

    Frozen once built. The nodes and diagnostics inside are plain models:
    the builder and the audit fill them in before the result is created, and
    nothing touches them afterwards.
    """
    model_config = ConfigDict(frozen=True)

    tree: List[Union[HeadingNode, LandmarkNode]] = Field(default_factory=list)
    diagnostics: List[Diagnostic] = Field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return sum(d.count for d in self.diagnostics)


class AnalysisState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETE = "complete"
    FAILED = "failed"


class StructureAnalysis(BaseModel):
    """
    Published output of one analysis run.

    `announce` is False for the first completed run of a task so that a
    consumer renders the diagnostics without announcing them assertively
    to assistive technology on page open.
    """
    model_config = ConfigDict(frozen=True)

    reference: str = ""
    run_token: int = 0
    state: AnalysisState = AnalysisState.COMPLETE
    announce: bool = True
    headings: AnalysisResult = Field(default_factory=AnalysisResult)
    landmarks: AnalysisResult = Field(default_factory=AnalysisResult)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [*self.headings.diagnostics, *self.landmarks.diagnostics]
