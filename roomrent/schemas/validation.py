from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator

class AmountModel(BaseModel):
    amount: float = Field(gt=0, description="Positive amount")

    @field_validator('amount', mode='before')
    def parse_float(cls, v):
        if isinstance(v, str):
            # Replace common separators
            v = v.replace(',', '.').replace(' ', '')
        return float(v)

class HoursModel(BaseModel):
    hours: float = Field(ge=0, description="Elapsed hours")

    @field_validator('hours', mode='before')
    def parse_float(cls, v):
        if isinstance(v, str):
            v = v.replace(',', '.').strip()
        return float(v)

class DateModel(BaseModel):
    value: date

    @field_validator('value', mode='before')
    def parse_date(cls, v):
        if isinstance(v, str):
            v = v.strip()
            for fmt in ("%d.%m.%Y", "%d/%m/%Y", "%Y-%m-%d"):
                try:
                    return datetime.strptime(v, fmt).date()
                except ValueError:
                    continue
            raise ValueError("Expected a date like 13.01.2026")
        return v
