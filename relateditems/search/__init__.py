"""Related-item search.

Looks up products similar to a given product with one more-like-this query
per configured field, then keeps well-scored hits and merges them into a
single de-duplicated list of product IDs.
"""

from .service import RelatedItemSearcher, SearcherConfig, filter_hits, merge_ids

__all__ = ["RelatedItemSearcher", "SearcherConfig", "filter_hits", "merge_ids"]
