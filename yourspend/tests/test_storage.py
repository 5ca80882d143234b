import unittest
from datetime import datetime
from decimal import Decimal

from yourspend.aggregation import Transaction
from yourspend.categories import CategoryCatalog, SettingsCategoryRepository
from yourspend.storage import (
    Preferences,
    SettingsStore,
    TransactionStore,
    create_db_engine,
    init_db,
)


class StorageTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_db_engine("sqlite://")
        init_db(self.engine)
        self.store = TransactionStore(self.engine)
        self.settings_store = SettingsStore(self.engine)

    def tearDown(self) -> None:
        self.engine.dispose()


class TransactionStoreTests(StorageTestCase):
    def test_add_assigns_id_and_round_trips_fields(self) -> None:
        created = self.store.add_transaction(
            Transaction(
                timestamp=datetime(2024, 2, 12, 10, 5),
                amount=Decimal("35.50"),
                category_id="food",
                note="noodles",
                currency="CNY",
            )
        )

        self.assertIsNotNone(created.id)
        loaded = self.store.get_transaction(created.id)
        self.assertEqual(loaded, created)

    def test_list_is_newest_first(self) -> None:
        for day in (10, 12, 11):
            self.store.add_transaction(
                Transaction(timestamp=datetime(2024, 2, day), amount=Decimal("1"), category_id="food")
            )

        days = [txn.timestamp.day for txn in self.store.list_transactions()]

        self.assertEqual(days, [12, 11, 10])

    def test_update_does_not_revalidate_amount(self) -> None:
        created = self.store.add_transaction(
            Transaction(timestamp=datetime(2024, 2, 12), amount=Decimal("10"), category_id="food")
        )

        updated = self.store.update_transaction(created.id, amount=Decimal("-3"), note="refund")

        self.assertEqual(updated.amount, Decimal("-3"))
        self.assertEqual(updated.note, "refund")

    def test_update_rejects_unknown_fields(self) -> None:
        with self.assertRaises(ValueError):
            self.store.update_transaction(1, colour="red")

    def test_update_missing_transaction_returns_none(self) -> None:
        self.assertIsNone(self.store.update_transaction(404, note="x"))

    def test_delete(self) -> None:
        created = self.store.add_transaction(
            Transaction(timestamp=datetime(2024, 2, 12), amount=Decimal("10"), category_id="food")
        )

        self.assertTrue(self.store.delete_transaction(created.id))
        self.assertFalse(self.store.delete_transaction(created.id))
        self.assertEqual(self.store.list_transactions(), [])


class SettingsStoreTests(StorageTestCase):
    def test_get_returns_default_until_set(self) -> None:
        self.assertEqual(self.settings_store.get("theme", "system"), "system")

        self.settings_store.set("theme", "dark")
        self.settings_store.set("theme", "light")

        self.assertEqual(self.settings_store.get("theme"), "light")

    def test_preferences_defaults_and_updates(self) -> None:
        preferences = Preferences(self.settings_store, system_default_currency="USD")
        self.assertEqual(preferences.default_currency, "USD")
        self.assertFalse(preferences.show_unified)

        preferences.default_currency = "gbp"
        preferences.show_unified = True

        self.assertEqual(preferences.default_currency, "GBP")
        self.assertTrue(preferences.show_unified)

    def test_preferences_reject_invalid_currency(self) -> None:
        preferences = Preferences(self.settings_store)

        with self.assertRaises(ValueError):
            preferences.default_currency = "dollars"

    def test_corrupt_stored_currency_falls_back(self) -> None:
        self.settings_store.set("defaultCurrencyCode", "??")

        self.assertEqual(Preferences(self.settings_store).default_currency, "CNY")

    def test_category_catalog_persists_as_json(self) -> None:
        catalog = CategoryCatalog(SettingsCategoryRepository(self.settings_store))
        created = catalog.add_category("Pets", "pawprint.fill")

        reloaded = CategoryCatalog(SettingsCategoryRepository(self.settings_store))

        self.assertEqual(reloaded.get_category(created.id), created)
        self.assertIn('"pawprint.fill"', self.settings_store.get("savedCategories"))


if __name__ == "__main__":
    unittest.main()
