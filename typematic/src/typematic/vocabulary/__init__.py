from .graph import ResourceKind, VocabularyGraph, VocabularyResource
from .loader import extract_vocabulary, load_graph, load_vocabulary
