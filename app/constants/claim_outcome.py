# app/constants/claim_outcome.py

from enum import Enum


class ClaimOutcome(str, Enum):
    OK = "ok"
    ALREADY_CLAIMED = "already_claimed"
    OUT_OF_STOCK = "out_of_stock"
    NOT_FOUND = "not_found"
    STORE_FAILURE = "store_failure"
