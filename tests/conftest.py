import copy
import json

import pytest

from gplay.models.metadata import FeatureMetadata


# ------------------------------------------------------
# Small metadata bundle shaped like the exported one
# ------------------------------------------------------

FEATURE_COLS = [
    "Price_num",
    "Size_MB",
    "Reviews_num",
    "Rating_num",
    "days_since_update",
    "Type_is_paid",
    "Category_cat_game",
    "Category_cat_family",
    "Category_cat_other",
    "ContentRating_cat_everyone",
    "ContentRating_cat_teen",
    "Genre_primary_action",
    "Genre_primary_puzzle",
]

# price, size, reviews, rating, days_since_update
QUANTILES = [
    [0.0, 1.0, 0.0, 1.0, 0.0],
    [0.0, 5.0, 100.0, 3.9, 50.0],
    [0.0, 14.0, 1500.0, 4.2, 200.0],
    [0.99, 30.0, 20000.0, 4.5, 600.0],
    [9.99, 100.0, 1000000.0, 5.0, 3000.0],
]

META_DICT = {
    "feature_cols_order": FEATURE_COLS,
    "num_col_idx": [0, 1, 2, 3, 4],
    # medians sit on the middle quantile row
    "train_numeric_medians": [0.0, 14.0, 1500.0, 4.2, 200.0],
    "quantiles": QUANTILES,
    "n_quantiles": 5,
    "bins": [100, 1000, 10000, 100000, 1000000],
}


@pytest.fixture
def meta_dict():
    return copy.deepcopy(META_DICT)


@pytest.fixture
def meta(meta_dict):
    return FeatureMetadata.model_validate(meta_dict)


@pytest.fixture
def meta_path(tmp_path, meta_dict):
    p = tmp_path / "meta_quantile.json"
    p.write_text(json.dumps(meta_dict), encoding="utf-8")
    return p


@pytest.fixture
def full_record():
    return {
        "category": "GAME",
        "contentRating": "Teen",
        "genre": "Action",
        "reviews": "25000",
        "rating": "4.4",
        "size": "42",
        "price": "0",
        "type": "Free",
    }
