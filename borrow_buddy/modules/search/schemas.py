from pydantic import BaseModel
from typing import Optional, List

UNKNOWN_GROUP = "Unknown Group"


class SearchResult(BaseModel):
    id: str
    name: str
    description: str = ""
    category_name: Optional[str] = None
    group_id: str = ""
    group_name: str = UNKNOWN_GROUP
    owner_id: str
    owner_name: str
    status: str
    image_url: Optional[str] = None
    brand: Optional[str] = None
    power_source: Optional[str] = None


class FilterOptions(BaseModel):
    categories: List[str] = []
    groups: List[str] = []
    statuses: List[str] = []
