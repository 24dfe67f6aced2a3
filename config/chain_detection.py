"""
Chain Detection Configuration - deed buyer → owned property linkage.

Batch caps bound BatchData calls per invocation.
"""

# Matching thresholds
MIN_CONFIDENCE_SCORE = 60
EXACT_NAME_SCORE = 100
FUZZY_NAME_SCORE = 85
PARTIAL_NAME_SCORE = 60

# Name matcher scores
SUBSTRING_MATCH_SCORE = 85
TOKEN_MATCH_MAX_SCORE = 80

# Confidence weights
WEIGHT_EXACT_NAME = 40
WEIGHT_FUZZY_NAME = 25
WEIGHT_PARTIAL_NAME = 15
WEIGHT_MAILING_MISMATCH = 20
WEIGHT_SAME_STATE = 10
WEIGHT_RECENT_SALE = 5
MAX_CONFIDENCE_SCORE = 100

# Sales newer than this many days count as recent
RECENT_SALE_DAYS = 30

# Batch scan limits
DEFAULT_BATCH_LIMIT = 10
MAX_BATCH_LIMIT = 100
BATCH_PROCESS_CAP = 5

# Confidence labels (lower bound inclusive)
CONFIDENCE_HIGH = 80
CONFIDENCE_MEDIUM = 60

# Chain lifecycle
CHAIN_STATUS_DETECTED = "detected"
CHAIN_STATUSES = ("detected", "contacted", "listed", "sold")

# Chain query defaults
DEFAULT_QUERY_LIMIT = 50

# Listings
LISTING_STATUS_SOLD = "sold"

# BatchData endpoints
BATCH_DATA_PROPERTY_URL = "https://api.batchdata.com/api/v1/property/details"
BATCH_DATA_PERSON_SEARCH_URL = "https://api.batchdata.com/api/v1/person/property-search"
REQUEST_TIMEOUT_SECONDS = 20
