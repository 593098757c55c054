from pydantic import BaseModel


class SweepResultOut(BaseModel):
    rejectedCount: int
    errorCount: int
    totalFound: int


class StatusRefreshOut(BaseModel):
    usedCount: int
    rejectedCount: int
    errorCount: int
    totalFound: int
