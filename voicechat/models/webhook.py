"""Wire schemas for the workflow webhook."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanItem(BaseModel):
    title: str = ""
    done: Optional[bool] = None


class SourceLink(BaseModel):
    title: str = ""
    url: str = ""


class WorkflowResult(BaseModel):
    """Structured answer produced by the remote workflow."""
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None
    summary: Optional[str] = None
    plan: List[PlanItem] = Field(default_factory=list)
    sources: List[SourceLink] = Field(default_factory=list)

    def visible_plan(self) -> List[PlanItem]:
        """Plan items with a title, in order."""
        return [item for item in self.plan if item.title.strip()]

    def visible_sources(self) -> List[SourceLink]:
        """Sources with a url; a blank title falls back to the url."""
        links = []
        for source in self.sources:
            if not source.url.strip():
                continue
            title = source.title if source.title.strip() else source.url
            links.append(SourceLink(title=title, url=source.url))
        return links


class WebhookReply(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    ok: Optional[bool] = None
    status: Optional[str] = None
    message: Optional[str] = None
    result: Optional[WorkflowResult] = None
    http_code: int = Field(default=0, alias="httpCode")

    def resolve_text(self) -> Optional[str]:
        """First non-blank of result text, message and status."""
        candidates = [self.result.text if self.result else None, self.message, self.status]
        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return None


class PayloadMessage(BaseModel):
    id: str
    text: str
    role: str
    ts: int


class PayloadMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client: str
    session_id: str = Field(alias="sessionId")
    device: str
    user_agent: str = Field(alias="userAgent")
    lang: str


class WebhookPayload(BaseModel):
    message: PayloadMessage
    meta: PayloadMeta
