"""
Metadata Filters for Vector Search
Builds Pinecone filter dictionaries and evaluates them against in-memory metadata
"""
from typing import Dict, Any, Optional, List
import logging

logger = logging.getLogger(__name__)


class VectorStoreFilters:
    """
    Build metadata filter dictionaries for Pinecone queries.
    Project scoping is carried by namespaces; these filters refine within one.
    """

    @staticmethod
    def build_unit_type_filter(unit_types: List[str]) -> Dict[str, Any]:
        """
        Restrict to heading, paragraph, list or link units.
        """
        return {"type": {"$in": list(unit_types)}}

    @staticmethod
    def build_url_filter(url: str) -> Dict[str, Any]:
        return {"url": {"$eq": url}}

    @staticmethod
    def combine_filters(*filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """
        Combine filters with AND logic, ignoring empty ones.
        """
        present = [f for f in filters if f]

        if not present:
            return None
        if len(present) == 1:
            combined = present[0]
        else:
            combined = {"$and": present}

        logger.debug(f"Built combined filter: {combined}")
        return combined


def _compare(value: Any, operator: str, operand: Any) -> bool:
    # List-valued metadata matches when any element matches
    if isinstance(value, list) and operator in ("$eq", "$in"):
        candidates = operand if operator == "$in" else [operand]
        return any(item in candidates for item in value)
    if isinstance(value, list) and operator in ("$ne", "$nin"):
        candidates = operand if operator == "$nin" else [operand]
        return not any(item in candidates for item in value)

    if operator == "$eq":
        return value == operand
    if operator == "$ne":
        return value != operand
    if operator == "$in":
        return value in operand
    if operator == "$nin":
        return value not in operand

    try:
        if operator == "$gt":
            return value > operand
        if operator == "$gte":
            return value >= operand
        if operator == "$lt":
            return value < operand
        if operator == "$lte":
            return value <= operand
    except TypeError:
        return False

    raise ValueError(f"Unsupported filter operator: {operator}")


def _field_matches(metadata: Dict[str, Any], field: str, condition: Any) -> bool:
    if not isinstance(condition, dict):
        condition = {"$eq": condition}

    for operator, operand in condition.items():
        if operator == "$exists":
            if (field in metadata) != bool(operand):
                return False
            continue
        if field not in metadata:
            # Absent fields only satisfy negative operators
            if operator in ("$ne", "$nin"):
                continue
            return False
        if not _compare(metadata[field], operator, operand):
            return False

    return True


def matches_filter(metadata: Dict[str, Any], filter_dict: Optional[Dict[str, Any]]) -> bool:
    """
    Evaluate a Pinecone-style metadata filter.

    Supports $eq, $ne, $in, $nin, $gt, $gte, $lt, $lte, $exists, $and, $or
    and bare equality. Top-level keys are ANDed.
    """
    if not filter_dict:
        return True

    for key, condition in filter_dict.items():
        if key == "$and":
            if not all(matches_filter(metadata, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches_filter(metadata, sub) for sub in condition):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported top-level filter operator: {key}")
        elif not _field_matches(metadata, key, condition):
            return False

    return True


__all__ = ["VectorStoreFilters", "matches_filter"]
