# gplay/models/feature_schema.py
"""
Column names the feature builder writes into. Must match feature_cols_order
in the metadata bundle exported at training time.
"""

# Direct numeric columns
PRICE_COL = "Price_num"
SIZE_COL = "Size_MB"
REVIEWS_COL = "Reviews_num"
RATING_COL = "Rating_num"
DAYS_SINCE_UPDATE_COL = "days_since_update"

# Binary indicator (1.0 when the app is paid)
TYPE_PAID_COL = "Type_is_paid"
PAID_LEVEL = "paid"

# One-hot groups: column = prefix + lower-cased level
CATEGORY_PREFIX = "Category_cat_"
CONTENT_RATING_PREFIX = "ContentRating_cat_"
GENRE_PREFIX = "Genre_primary_"
OTHER_LEVEL = "other"

