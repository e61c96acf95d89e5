"""sentiment_api package.

Binary sentiment classification of short texts, singly or from CSV uploads,
backed by a fine-tuned Transformer model when one is available and by a
keyword heuristic otherwise. Results are recorded in a SQL database that also
serves history and aggregate statistics.
"""
