from supabase import Client
from borrow_buddy.modules.search.schemas import SearchResult, FilterOptions, UNKNOWN_GROUP
from borrow_buddy.modules.groups.models import GROUPS_TABLE
from borrow_buddy.modules.tools.schemas import ToolResponse
from borrow_buddy.modules.tools.service import ToolService, normalize_status
from borrow_buddy.modules.profiles.service import ProfileService
from typing import List, Optional, Dict, Any
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 5
MAX_LIMIT = 100
SEARCHABLE_FIELDS = ("name", "description", "brand", "power_source")


def split_terms(term: str) -> List[str]:
    return [w.lower() for w in (term or "").split() if w]


def matches(tool: Dict[str, Any], words: List[str], category_name: Optional[str] = None) -> bool:
    """Every word occurs, case-insensitively, in at least one searchable field"""
    haystacks = [str(tool.get(f) or "").lower() for f in SEARCHABLE_FIELDS]
    haystacks.append((category_name or "").lower())
    return all(any(word in h for h in haystacks) for word in words)


class SearchService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.tools = ToolService(supabase)

    def _group_names(self, group_ids: List[str]) -> Dict[str, str]:
        ids = list(set(group_ids))
        if not ids:
            return {}
        result = self.supabase.table(GROUPS_TABLE)\
            .select("id, name")\
            .in_("id", ids)\
            .execute()
        return {g["id"]: g["name"] for g in result.data or []}

    def search(
        self,
        user_id: str,
        term: str,
        limit: Optional[int] = None,
        category: Optional[str] = None,
        group: Optional[str] = None,
        status: Optional[str] = None,
        cache: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        """
        Tools visible to the user matching every word of term.
        category and group filter by name, status by value.
        """
        words = split_terms(term)
        if not words:
            return []
        try:
            visible = self.tools.visible_tool_rows(user_id, cache)
            categories = self.tools.category_names(t.get("category_id") for t in visible)
            hits = [
                t for t in visible
                if matches(t, words, categories.get(t.get("category_id")))
            ]
            hits.sort(key=lambda t: (t.get("name") or "").lower())

            groups = self._group_names([g for t in hits for g in t["_group_ids"]])
            owners = ProfileService(self.supabase).get_display_names(t["owner_id"] for t in hits)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

        results = []
        for t in hits:
            group_id = t["_group_ids"][0] if t["_group_ids"] else ""
            result = SearchResult(
                id=t["id"],
                name=t["name"],
                description=t.get("description") or "",
                category_name=categories.get(t.get("category_id")),
                group_id=group_id,
                group_name=groups.get(group_id, UNKNOWN_GROUP),
                owner_id=t["owner_id"],
                owner_name=owners[t["owner_id"]],
                status=normalize_status(t.get("status")) or "",
                image_url=t.get("image_url"),
                brand=t.get("brand"),
                power_source=t.get("power_source")
            )
            if category and result.category_name != category:
                continue
            if group and group not in {groups.get(g) for g in t["_group_ids"]}:
                continue
            if status and result.status != normalize_status(status):
                continue
            results.append(result)
        if limit:
            results = results[:min(limit, MAX_LIMIT)]
        return results

    def filter_options(self, user_id: str, cache: Optional[Dict[str, Any]] = None) -> FilterOptions:
        """Category names, group names and statuses present among visible tools"""
        try:
            visible = [t for t in self.tools.visible_tool_rows(user_id, cache) if t["owner_id"] != user_id]
            categories = self.tools.category_names(t.get("category_id") for t in visible)
            groups = self._group_names([g for t in visible for g in t["_group_ids"]])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return FilterOptions(
            categories=sorted(set(categories.values())),
            groups=sorted(set(groups.values())),
            statuses=sorted({normalize_status(t.get("status")) for t in visible if t.get("status")})
        )

    def new_tools_feed(self, user_id: str, limit: int = 10, cache: Optional[Dict[str, Any]] = None) -> List[ToolResponse]:
        """Most recently added tools of other group members"""
        tools = self.tools.list_visible_tools(user_id, cache=cache)
        return tools[:min(limit, MAX_LIMIT)]
