# ============================================================================
# src/prescription_resolution/core/context/catalog_entry.py
# ============================================================================
"""
Read-only product/medicine record returned by catalog adapters.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CatalogEntry:
    id: str
    name: str
    price: float = 0.0
    unit: Optional[str] = None
    in_stock: bool = True
    stock_quantity: Optional[int] = None
    requires_prescription: bool = False

    active_ingredient: Optional[str] = None
    brand: Optional[str] = None
    therapeutic_group: Optional[str] = None
    indication: Optional[str] = None
    contraindication: Optional[str] = None
    strength: Optional[str] = None

    # Taxonomy
    category: Optional[str] = None
    subcategory: Optional[str] = None
    dosage_form: Optional[str] = None
    route: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CatalogEntry":
        """
        Build an entry from a loosely-typed record (JSON or sqlite row).

        Accepts camelCase aliases used by catalog exports.
        """
        aliases = {
            "_id": "id",
            "stockQuantity": "stock_quantity",
            "inStock": "in_stock",
            "isPrescription": "requires_prescription",
            "requiresPrescription": "requires_prescription",
            "activeIngredient": "active_ingredient",
            "genericName": "active_ingredient",
            "therapeuticGroup": "therapeutic_group",
            "dosageForm": "dosage_form",
        }
        known = {f.name for f in fields(cls)}
        data: Dict[str, Any] = {}
        for key, value in dict(record).items():
            name = aliases.get(key, key)
            if name in known and name not in data:
                data[name] = value

        data["id"] = str(data.get("id", "")).strip()
        data["name"] = str(data.get("name", "")).strip()
        data["price"] = float(data.get("price") or 0.0)
        if data.get("stock_quantity") is not None:
            data["stock_quantity"] = int(data["stock_quantity"])
        if "in_stock" in data:
            data["in_stock"] = bool(data["in_stock"])
        elif data.get("stock_quantity") is not None:
            data["in_stock"] = data["stock_quantity"] > 0
        data["requires_prescription"] = bool(data.get("requires_prescription", False))
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
