from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[3]

WHO_LMS_DIR = PROJECT_ROOT / "data" / "who"

# table key -> (file name, index variable, first x, last x, step)
TABLE_LAYOUT = {
    "wfa": ("wfa_lms.csv", "age_months", 0.0, 60.0, 1.0),
    "hfa": ("hfa_lms.csv", "age_months", 0.0, 60.0, 1.0),
    "hcfa": ("hcfa_lms.csv", "age_months", 0.0, 60.0, 1.0),
    "wfl": ("wfl_lms.csv", "length_cm", 45.0, 110.0, 0.5),
    "wfh": ("wfh_lms.csv", "height_cm", 65.0, 120.0, 0.5),
}

SEXES = ("M", "F")

# Age domain of the under-five standards, inclusive
AGE_RANGE_MONTHS = (0.0, 60.0)

LMS_EPSILON = 1e-6

# WHO switches from recumbent length to standing height at 24 months
LENGTH_HEIGHT_CUTOFF_MONTHS = 24.0

# |Z| above WARNING_Z is a warning, |Z| at or above ALERT_Z is an alert
WARNING_Z = 2.0
ALERT_Z = 3.0

# Upper plausibility limits for raw measurements
PLAUSIBILITY_LIMITS = {
    "weight_kg": 50.0,
    "height_cm": 150.0,
    "head_circumference_cm": 70.0,
}

# Weight/height pairs whose BMI falls outside this range are rejected as implausible
BMI_RANGE = (5.0, 40.0)

DAYS_PER_MONTH = 30.4375
