from pydantic import BaseModel


class AdminStats(BaseModel):
    accounts: int
    premium_accounts: int
    lessons: int
    public_lessons: int
    premium_lessons: int
    open_reports: int
