"""Template compilation and indexing.

``compiler`` adapts chevron's tokenizer and renderer to precompiled
template handles; ``index`` maps those handles to lookup keys.
"""
