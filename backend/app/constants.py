from enum import StrEnum


class EntityType(StrEnum):
    ARTICLES = "articles"
    CATEGORIES = "categories"
    TAGS = "tags"


class ArticleStatus(StrEnum):
    DRAFT = "draft"
    PUBLISHED = "published"
    HIDDEN = "hidden"


class Language(StrEnum):
    EN = "en"
    BN = "bn"


ALL_ENTITY_TYPES: tuple[EntityType, ...] = (
    EntityType.ARTICLES,
    EntityType.CATEGORIES,
    EntityType.TAGS,
)

# Tie-break order for equal relevance scores
TYPE_PRECEDENCE: dict[EntityType, int] = {
    entity_type: index for index, entity_type in enumerate(ALL_ENTITY_TYPES)
}

# Opening/closing marker wrapped around matched substrings
HIGHLIGHT_OPEN = "<c>"
HIGHLIGHT_CLOSE = "</c>"

EXCERPT_MAX_LENGTH = 220
