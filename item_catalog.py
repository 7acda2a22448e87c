from collections import Counter
from typing import Iterable, List

import pandas as pd # type: ignore
from rapidfuzz import process, fuzz # type: ignore

from models import CatalogItem, Invoice, LineItem

CATALOG_COLUMNS = ["id", "name", "price", "hsn", "gst_rate"]


class ItemCatalog:
    def __init__(self, items: Iterable[CatalogItem]):
        self.df = pd.DataFrame(
            [[i.id, i.name, float(i.price), str(i.hsn), float(i.gst_rate)] for i in items],
            columns=CATALOG_COLUMNS,
        )

    @classmethod
    def from_csv(cls, csv_path: str):
        """Load catalog items (CSV must have columns: name, price; optional id, hsn, gst_rate)."""
        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
        # normalize columns (case-insensitive)
        df.columns = [c.strip().lower() for c in df.columns]
        if "hsn_code" in df.columns and "hsn" not in df.columns:
            df.rename(columns={"hsn_code": "hsn"}, inplace=True)
        if "rate" in df.columns and "gst_rate" not in df.columns:
            df.rename(columns={"rate": "gst_rate"}, inplace=True)
        for required in ("name", "price"):
            if required not in df.columns:
                raise ValueError(f"CSV must have a {required} column")
        if "id" not in df.columns:
            df["id"] = [f"item-{n + 1}" for n in range(len(df))]
        if "hsn" not in df.columns:
            df["hsn"] = ""
        df["price"] = pd.to_numeric(df["price"])
        if "gst_rate" in df.columns:
            df["gst_rate"] = pd.to_numeric(df["gst_rate"], errors="coerce").fillna(0.0)
        else:
            df["gst_rate"] = 0.0

        catalog = cls([])
        catalog.df = df[CATALOG_COLUMNS].reset_index(drop=True)
        return catalog

    def __len__(self):
        return len(self.df)

    def _row_to_item(self, row) -> CatalogItem:
        return CatalogItem(
            id=str(row["id"]),
            name=str(row["name"]),
            price=float(row["price"]),
            hsn=str(row["hsn"]),
            gst_rate=float(row["gst_rate"]),
        )

    def all(self) -> List[CatalogItem]:
        return [self._row_to_item(row) for _, row in self.df.iterrows()]

    def search(self, query: str) -> List[CatalogItem]:
        """Case-insensitive substring match on the item name; blank query returns everything."""
        if not query.strip():
            return self.all()
        mask = self.df["name"].str.lower().str.contains(query.strip().lower(), regex=False)
        return [self._row_to_item(row) for _, row in self.df[mask].iterrows()]

    def suggest(self, description: str, limit: int = 1):
        """Suggest closest catalog items for a free-text description."""
        choices = self.df["name"].tolist()
        if not description or not choices:
            return []
        matches = process.extract(description, choices, scorer=fuzz.WRatio, limit=limit)
        results = []
        for match, score, idx in matches:
            results.append({
                "item": self._row_to_item(self.df.iloc[idx]),
                "score": score
            })
        return results


def to_line_item(item: CatalogItem, quantity=1, discount=0.0) -> LineItem:
    """A fresh invoice line carrying the catalog's price, HSN and GST rate."""
    return LineItem(
        name=item.name,
        hsn=item.hsn,
        quantity=quantity,
        price=item.price,
        discount=discount,
        gst_rate=item.gst_rate,
    )


def frequent_items(invoices: Iterable[Invoice], customer_id: str, limit: int = 5) -> List[LineItem]:
    """Lines this customer buys most often, keyed by (name, price), reset to qty 1 and no discount."""
    counts = Counter()
    first_seen = {}
    for inv in invoices:
        if inv.customer.id != customer_id:
            continue
        for line in inv.items:
            key = (line.name, line.price)
            counts[key] += 1
            first_seen.setdefault(key, line)

    # Counter.most_common keeps insertion order for ties
    suggestions = []
    for key, _ in counts.most_common(limit):
        line = first_seen[key]
        suggestions.append(LineItem(
            name=line.name,
            hsn=line.hsn,
            quantity=1,
            price=line.price,
            discount=0.0,
            gst_rate=line.gst_rate,
        ))
    return suggestions
