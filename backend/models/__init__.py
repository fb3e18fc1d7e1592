
from models.vocabulary import VocabularyItem, ReviewLog, StudySnapshot

__all__ = [
    "VocabularyItem", "ReviewLog", "StudySnapshot",
]
