"""Fixed per-call constants that are not meant to be tuned per deployment."""

# Thresholds above this look calibrated for cosine similarity, not fusion scores.
COSINE_STYLE_THRESHOLD_CUTOFF = 0.05
# Reciprocal-rank-fusion scores sit around 1/(60 + rank); this keeps real hits.
FUSION_THRESHOLD = 0.005

# Search over-fetches so that thresholding still leaves enough results.
OVERFETCH_FACTOR = 2

# Graph-derived passages whose similarity could not be measured.
UNCERTAIN_GRAPH_SIMILARITY = 0.0
MIN_MEASURED_SIMILARITY = 0.001

MINHASH_NUM_PERM = 128
NEAR_DUP_SIMILARITY_THRESHOLD = 0.85
MIN_TRUNCATED_FRAGMENT = 200

EXPLANATION_MAX_DOCUMENTS = 10
DEFAULT_MODE_ID = "default-assistant"
FREE_MODE_ID = "free-mode"
RAG_OPERATION_TYPE = "rag_query"
