"""JSON-file product catalogue."""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from l3b_planner.errors import CatalogueInsertFailed
from l3b_planner.models import Product, ProductRecord


class ProductCatalogue:
    """Products stored as a JSON list, one dict per product with an ``id`` key."""

    def __init__(self, path: str = ".l3b/catalogue.json"):
        self.path = Path(path)

    def _read(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path) as f:
            return json.load(f)

    def _write(self, rows: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w") as f:
            json.dump(rows, f, indent=2, default=str)
        os.replace(tmp, self.path)

    def insert(self, record: ProductRecord, inserted: Optional[datetime] = None) -> int:
        """Append *record* and return its id.  Names are unique per site."""
        try:
            rows = self._read()
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogueInsertFailed(f"Cannot read catalogue {self.path}: {exc}") from exc

        for row in rows:
            if row["name"] == record.name and row["site_id"] == record.site_id:
                raise CatalogueInsertFailed(
                    f"Product {record.name} already exists for site {record.site_id}"
                )

        product_id = max((row["id"] for row in rows), default=0) + 1
        row = record.to_dict()
        row["id"] = product_id
        row["inserted"] = (inserted or datetime.now()).isoformat()
        rows.append(row)
        try:
            self._write(rows)
        except OSError as exc:
            raise CatalogueInsertFailed(f"Cannot write catalogue {self.path}: {exc}") from exc
        logger.info(f"Catalogue: inserted {record.name} as product {product_id}")
        return product_id

    def products(self, site_id: int, product_type: int) -> List[Product]:
        out = []
        for row in self._read():
            if row["site_id"] != site_id or row["product_type"] != product_type:
                continue
            created = row.get("created") or row["inserted"]
            out.append(Product(
                product_id=row["id"],
                product_type=row["product_type"],
                site_id=row["site_id"],
                name=row["name"],
                full_path=row["full_path"],
                created=datetime.fromisoformat(str(created)),
                inserted=datetime.fromisoformat(row["inserted"]),
                satellite_id=row.get("satellite_id", 0),
            ))
        return out
