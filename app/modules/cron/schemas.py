from pydantic import BaseModel


class WeeklySummaryResult(BaseModel):
    emails_sent: int
    families_processed: int
