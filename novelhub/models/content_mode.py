from enum import Enum


class ContentMode(str, Enum):
    """Visibility mode of a module or chapter."""

    DRAFT = "draft"
    PAID = "paid"
    PUBLISHED = "published"
    RENT = "rent"  # modules only

    @classmethod
    def parse(cls, value: "str | ContentMode | None") -> "ContentMode":
        """Legacy rows without a mode are paid content."""
        if value is None or value == "":
            return cls.PAID
        return cls(value)


MODULE_MODES = (ContentMode.DRAFT, ContentMode.PAID, ContentMode.PUBLISHED, ContentMode.RENT)
CHAPTER_MODES = (ContentMode.DRAFT, ContentMode.PAID, ContentMode.PUBLISHED)
