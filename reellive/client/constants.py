# =============================================================================
# ReelLive client -- pipeline timing constants
# =============================================================================
#
# All durations are in seconds.
# =============================================================================

# -- Gift pipeline -------------------------------------------------------------

GIFT_MAX_ACTIVE = 8
GIFT_DISPLAY_DURATION = 4.0
GIFT_MAX_AGE = 5.0
GIFT_SWEEP_INTERVAL = 1.0

GIFT_X_RANGE = (10.0, 90.0)  # % of width, keeps gifts off the edges
GIFT_Y_RANGE = (20.0, 80.0)  # % of height

COMBO_RESET_WINDOW = 3.0
COMBO_RAIN_THRESHOLD = 5

RAIN_GIFT_COUNT = 15
RAIN_STAGGER = 0.1
RAIN_APPEND_DELAY = 0.5
RAIN_ACTIVE_DURATION = 3.0
RAIN_START_Y = -10.0
RAIN_SENDER = "Gift Rain"

NOTIFICATION_TICKER_SIZE = 3

# -- Synchronized reactions ----------------------------------------------------

REACTION_DISPLAY_DURATION = 4.0
REACTION_COOLDOWN = 2.0
REACTION_INTENSITY_DIVISOR = 10
REACTION_MAX_INTENSITY = 5.0
