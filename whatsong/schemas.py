from pydantic import BaseModel, Field

# sqlite INTEGER range
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class Report(BaseModel):
    source_url: str
    reported_at_ms: int = Field(ge=INT64_MIN, le=INT64_MAX)
    version: int = Field(ge=INT64_MIN, le=INT64_MAX)


class Event(BaseModel):
    sequence: int
    source_id: str = Field(min_length=1)
    reported_at: int
    duration_seconds: int = Field(ge=0)
    title: str = Field(min_length=1)
    version: int
