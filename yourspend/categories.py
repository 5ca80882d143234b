from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Iterable
import uuid

from pydantic import BaseModel, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

OTHER_CATEGORY_ID = "other"
CATEGORIES_SETTING_KEY = "savedCategories"


class Category(BaseModel):
    id: str
    name: str
    icon: str
    is_system: bool = False


DEFAULT_CATEGORIES: tuple[Category, ...] = (
    Category(id="food", name="Food", icon="fork.knife", is_system=True),
    Category(id="drink", name="Drink", icon="wineglass.fill", is_system=True),
    Category(id="transport", name="Transport", icon="car.fill", is_system=True),
    Category(id="wear", name="Wear", icon="tshirt.fill", is_system=True),
)
FALLBACK_CATEGORY = DEFAULT_CATEGORIES[-1]

_CATEGORY_LIST = TypeAdapter(list[Category])


def encode_categories(categories: Iterable[Category]) -> str:
    return _CATEGORY_LIST.dump_json(list(categories)).decode("utf-8")


def decode_categories(payload: str | None) -> list[Category] | None:
    """Decode a persisted catalog; ``None`` when empty or unreadable."""
    if not payload:
        return None
    try:
        return _CATEGORY_LIST.validate_json(payload)
    except ValidationError:
        logger.warning("Stored category catalog is unreadable, using defaults")
        return None


class CategoryRepository(ABC):
    """Persistence seam for the category catalog."""

    @abstractmethod
    def load(self) -> list[Category] | None:
        """Return the saved catalog, or ``None`` when nothing usable is stored."""

    @abstractmethod
    def save(self, categories: list[Category]) -> None:
        """Replace the saved catalog."""


class InMemoryCategoryRepository(CategoryRepository):
    def __init__(self, categories: Iterable[Category] | None = None) -> None:
        self._payload = encode_categories(categories) if categories is not None else ""

    def load(self) -> list[Category] | None:
        return decode_categories(self._payload)

    def save(self, categories: list[Category]) -> None:
        self._payload = encode_categories(categories)


class SettingsCategoryRepository(CategoryRepository):
    """Stores the catalog as JSON text under a single settings key."""

    def __init__(self, settings_store, key: str = CATEGORIES_SETTING_KEY) -> None:
        self.settings_store = settings_store
        self.key = key

    def load(self) -> list[Category] | None:
        return decode_categories(self.settings_store.get(self.key))

    def save(self, categories: list[Category]) -> None:
        self.settings_store.set(self.key, encode_categories(categories))


class CategoryCatalog:
    def __init__(self, repository: CategoryRepository | None = None) -> None:
        self.repository = repository or InMemoryCategoryRepository()

    @property
    def categories(self) -> list[Category]:
        saved = self.repository.load()
        if not saved:
            return list(DEFAULT_CATEGORIES)
        return saved

    def get_category(self, category_id: str) -> Category:
        for category in self.categories:
            if category.id == category_id:
                return category
        return FALLBACK_CATEGORY

    def add_category(self, name: str, icon: str) -> Category:
        name = name.strip()
        if not name:
            raise ValueError("Category name required.")

        current = self.categories
        new_category = Category(id=str(uuid.uuid4()).upper(), name=name, icon=icon, is_system=False)
        other_index = next(
            (index for index, category in enumerate(current) if category.id == OTHER_CATEGORY_ID),
            None,
        )
        if other_index is None:
            current.append(new_category)
        else:
            current.insert(other_index, new_category)
        self.repository.save(current)
        logger.info("Added category %s (%s)", new_category.id, new_category.name)
        return new_category

    def delete_categories(self, offsets: Iterable[int]) -> None:
        current = self.categories
        removable = sorted(
            {index for index in offsets if 0 <= index < len(current) and not current[index].is_system},
            reverse=True,
        )
        for index in removable:
            del current[index]
        self.repository.save(current)

    def delete_category(self, category_id: str) -> bool:
        current = self.categories
        for index, category in enumerate(current):
            if category.id != category_id:
                continue
            if category.is_system:
                return False
            self.delete_categories([index])
            return True
        return False
