"""
Unit tests for the SQLite document store and product catalog.
"""

from product_assistant.core import catalog_db, document_store


class TestDocumentStore:
    def test_custom_set_get_and_overwrite(self) -> None:
        assert document_store.custom_get("k") is None
        document_store.custom_set("u1", "k", {"text": "one"})
        document_store.custom_set("u1", "k", {"text": "two"})
        assert document_store.custom_get("k") == {"text": "two"}

    def test_unknown_conversation(self) -> None:
        assert document_store.has_conversation("nobody") is False
        assert document_store.get_conversation("nobody") is None

    def test_add_conversation_is_idempotent(self) -> None:
        document_store.add_conversation("u1")
        document_store.add_entry_to_conversation("u1", {"role": "User", "content": "hi"})
        document_store.add_conversation("u1")
        assert len(document_store.get_conversation("u1")["entries"]) == 1

    def test_entry_creates_conversation(self) -> None:
        document_store.add_entry_to_conversation("u2", {"role": "Bot", "content": "hello", "timestamp": "t0"})
        assert document_store.get_conversation("u2") == {
            "conversationId": "u2",
            "entries": [{"role": "Bot", "content": "hello", "timestamp": "t0"}],
        }


class TestCatalog:
    def test_upsert_counts_and_missing_sku(self) -> None:
        inserted, updated = catalog_db.upsert_products([
            {"sku": "S1", "name": "Stroller", "price": "199"},
            {"sku": "  ", "name": "Mystery"},
        ])
        assert (inserted, updated) == (2, 0)
        inserted, updated = catalog_db.upsert_products([{"sku": "S1", "name": "Stroller v2", "price": "179"}])
        assert (inserted, updated) == (0, 1)
        assert catalog_db.count_products() == 2
        assert catalog_db.get_products_by_skus(["N/A"])[0]["name"] == "Mystery"

    def test_get_by_skus_order_unknown_and_duplicates(self) -> None:
        catalog_db.upsert_products([
            {"sku": "S1", "name": "Stroller"},
            {"sku": "S2", "name": "Bib"},
        ])
        products = catalog_db.get_products_by_skus(["S2", "missing", "S1", "S2"])
        assert [p["sku"] for p in products] == ["S2", "S1"]
        assert products[0] == {"sku": "S2", "name": "Bib"}

    def test_get_by_skus_invalid_input(self) -> None:
        assert catalog_db.get_products_by_skus([]) == []
        assert catalog_db.get_products_by_skus("S1") == []
        assert catalog_db.get_products_by_skus(None) == []
