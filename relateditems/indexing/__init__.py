from .importer import ProductImporter, build_document, is_search_target

__all__ = ["ProductImporter", "build_document", "is_search_target"]
