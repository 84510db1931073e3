from typing import Any, Dict, Iterable, List, Optional, Type

from beanie import PydanticObjectId

from royaldrive.models.lookups import LookupDocument, Status

SOLD_PATTERN = {"$regex": "^sold$", "$options": "i"}
AVAILABLE_PATTERN = {"$regex": "^available$", "$options": "i"}


class LookupRepository:
    """
    Read-only access to the master-data collections.
    """

    async def get_many(
        self,
        model: Type[LookupDocument],
        ids: Iterable[PydanticObjectId],
    ) -> Dict[PydanticObjectId, LookupDocument]:
        """
        Fetch every referenced document of one lookup type in a single query.

        Returns:
            Mapping of id -> document; ids with no document are absent
        """
        unique_ids = list({PydanticObjectId(str(i)) for i in ids if i is not None})
        if not unique_ids:
            return {}
        docs = await self.find_many(model, {"_id": {"$in": unique_ids}})
        return {doc.id: doc for doc in docs}

    async def get_status(self, status_id: Any) -> Optional[Status]:
        if not PydanticObjectId.is_valid(str(status_id)):
            return None
        return await self.find_one(Status, {"_id": PydanticObjectId(str(status_id))})

    async def find_sold_status(self) -> Optional[Status]:
        """Status whose code, slug or name is "sold" (any case)."""
        return await self.find_one(
            Status,
            {"$or": [{"code": SOLD_PATTERN}, {"slug": SOLD_PATTERN}, {"name": SOLD_PATTERN}]},
        )

    async def find_available_status(self) -> Optional[Status]:
        """The default status, else one whose code, slug or name is "available"."""
        default = await self.find_one(Status, {"is_default": True})
        if default is not None:
            return default
        return await self.find_one(
            Status,
            {"$or": [
                {"code": AVAILABLE_PATTERN},
                {"slug": AVAILABLE_PATTERN},
                {"name": AVAILABLE_PATTERN},
            ]},
        )

    async def find_one(self, model: Type[LookupDocument], query: Dict[str, Any]):
        return await model.find_one(query)

    async def find_many(self, model: Type[LookupDocument], query: Dict[str, Any]) -> List:
        return await model.find(query).to_list()
