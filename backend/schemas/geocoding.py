from pydantic import BaseModel


class PickedLocationRead(BaseModel):
    lat: float
    lng: float
    address: str
    is_fallback: bool = False

    class Config:
        from_attributes = True
