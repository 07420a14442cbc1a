"""
Scoring thresholds and penalties.

Every number that moves a fraud score lives here under a name so that callers
and tests can override it. Values are empirical and carried over unchanged;
they are not calibrated.
"""

# ============================================================================
# Image forensics
# ============================================================================

EDITING_SOFTWARE = ("photoshop", "gimp", "lightroom", "snapseed", "picsart")
EDITING_SOFTWARE_PENALTY = 20
METADATA_STRIPPED_PENALTY = 15
NO_METADATA_PENALTY = 10

VERY_LOW_RESOLUTION_PIXELS = 100_000  # ~316x316
LOW_RESOLUTION_PIXELS = 500_000  # ~707x707
VERY_LOW_RESOLUTION_PENALTY = 15
LOW_RESOLUTION_PENALTY = 5

SHARPNESS_FLOOR = 100.0  # Laplacian variance
BLUR_PENALTY = 10
CONTRAST_FLOOR = 50.0
LOW_CONTRAST_PENALTY = 5

RECOMPRESS_QUALITY = 95
RECOMPRESS_SIZE_RATIO = 1.5
MULTIPLE_COMPRESSION_PENALTY = 10

LIGHTING_VARIANCE_THRESHOLD = 2000.0
INCONSISTENT_LIGHTING_PENALTY = 15

ELA_QUALITY = 70
ELA_DRIFT_THRESHOLD = 30.0
ELA_PENALTY = 20

STOCK_ASPECT_RATIOS = (1.0, 1.5, 1.778, 2.0)  # 1:1, 3:2, 16:9, 2:1
STOCK_ASPECT_TOLERANCE = 0.01
STOCK_ASPECT_MIN_SIDE = 1920
STOCK_ASPECT_PENALTY = 10

STOCK_RESOLUTIONS = (
    (1920, 1080),
    (1280, 720),
    (3840, 2160),
    (4000, 6000),
    (6000, 4000),
    (5000, 3333),
    (4500, 3000),
)
STOCK_RESOLUTION_CONFIDENCE = 30
WATERMARK_UNIFORMITY_THRESHOLD = 10.0
WATERMARK_CONFIDENCE = 40
WATERMARK_REMOVAL_PENALTY = 25
EXPOSURE_CONSISTENCY_CONFIDENCE = 20
EXPOSURE_MIN_WIDTH = 2000
EXPOSURE_STDEV_CEILING = 40.0
WELL_LIT_RANGE = (100.0, 170.0)
STOCK_PHOTO_CONFIDENCE_THRESHOLD = 50
STOCK_PHOTO_PENALTY = 20

PERCEPTUAL_HASH_SIZE = 16  # 16x16 = 256 bits
CROSS_CLAIM_DUPLICATE_DISTANCE = 5  # strictly below
INTERNAL_DUPLICATE_DISTANCE = 3  # strictly below
CROSS_CLAIM_DUPLICATE_PENALTY = 30

EDGE_RESPONSE_THRESHOLD = 50
HIGH_EDGE_DENSITY = 0.15

CLAIM_TYPE_MISMATCH_PENALTY = 15
EXPECTED_CONTENT = {
    "auto": ("vehicle", "car", "automobile", "outdoor_scene", "structural_damage"),
    "home": ("building_interior", "house", "building", "fire_damage", "water_damage", "structural_damage"),
    "health": ("medical", "hospital", "document", "person"),
}

PHOTO_FAR_BEFORE_DAYS = 30
PHOTO_BEFORE_DAYS = 7
PHOTO_AFTER_DAYS = 30
PHOTO_FAR_BEFORE_PENALTY = 25
PHOTO_BEFORE_PENALTY = 15
PHOTO_AFTER_PENALTY = 5

ANALYSIS_FAILED_PENALTY = 15
ANALYSIS_FAILED_INDICATOR = "Image analysis failed - possible corrupt or invalid file"

IMAGE_HIGH_RISK = 60
IMAGE_MEDIUM_RISK = 30

# ============================================================================
# Multi-image aggregation
# ============================================================================

INTERNAL_DUPLICATE_PENALTY = 20
NO_IMAGES_PENALTY = 15

# ============================================================================
# Documents
# ============================================================================

MIN_PDF_TEXT_LENGTH = 50
MIN_CLASSIFICATION_MATCHES = 3
SMALL_IMAGE_WIDTH = 1000
BINARIZE_THRESHOLD = 150

FORMATTING_PENALTY = 15
FUTURE_DATE_PENALTY = 20
DATE_SPAN_PENALTY = 10
DATE_SPAN_YEARS = 50
ERA_MIX_PENALTY = 5
MISSING_FIELDS_PENALTY = 20
PLACEHOLDER_PENALTY = 30
REPETITION_PENALTY = 10
REPETITION_RATIO = 0.15
REPETITION_MIN_TOKENS = 20
MIXED_CURRENCY_PENALTY = 10
NON_ALNUM_RATIO = 0.3
NON_ALNUM_PENALTY = 10
SINGLE_CHAR_RATIO = 0.3
SINGLE_CHAR_PENALTY = 10
MAX_INDENT_LEVELS = 4
AUTHENTICITY_THRESHOLD = 50

# ============================================================================
# Document validation
# ============================================================================

POLICY_NOT_FOUND_PENALTY = 15
POLICY_MISMATCH_PENALTY = 30
POLICY_PROBABLE_SIMILARITY = 0.9
NAME_MATCH_SIMILARITY = 0.95
NAME_PROBABLE_SIMILARITY = 0.7
NAME_MISMATCH_PENALTY = 20
COVERAGE_EXCEEDED_PENALTY = 25
COVERAGE_NEAR_LIMIT_RATIO = 0.9
BEFORE_EFFECTIVE_PENALTY = 20
AFTER_EXPIRATION_PENALTY = 25
FORGERY_PENALTY = 35
DOCUMENT_TYPE_PENALTY = 10
DOCUMENT_TYPE_CONFIDENCE = 0.7
LOW_OCR_CONFIDENCE = 50

# ============================================================================
# Behavioral rules
# ============================================================================

HIGH_CLAIM_AMOUNT = 50_000
HIGH_AMOUNT_PENALTY = 25
SAME_DAY_PENALTY = 20
MIN_DESCRIPTION_LENGTH = 50
SHORT_DESCRIPTION_PENALTY = 15
WEEKEND_PENALTY = 10
ROUND_AMOUNT_UNIT = 1000
ROUND_AMOUNT_PENALTY = 10
HIGH_RISK_KEYWORDS = ("total loss", "completely destroyed", "stolen", "fire", "flood")
MIN_KEYWORD_HITS = 2
KEYWORD_PENALTY = 15

# ============================================================================
# Fusion and decision
# ============================================================================

WEIGHTS_ALL = (0.35, 0.35, 0.30)  # text, document validation, image
WEIGHTS_TEXT_DOCUMENT = (0.5, 0.5)
WEIGHTS_TEXT_IMAGE = (0.6, 0.4)

HIGH_RISK_SCORE = 70
MEDIUM_RISK_SCORE = 40
