"""Form engine constants shared across the SDK.

These values are referenced by the validation rules, the engine, and the
autosave timer.  Several can be overridden via environment variables so
deployments can tune behaviour without code changes.
"""

import os

# Seconds of quiet after the last answer change before an autosave fires.
# Overridable via SUGB_AUTOSAVE_DELAY.
AUTOSAVE_DELAY_SECONDS = float(os.getenv("SUGB_AUTOSAVE_DELAY", "2.0"))

# PERCENT questions without an explicit validation max are capped here.
PERCENT_DEFAULT_MAX = 100.0

# Option labels (lower-cased) that act as an "Other" sentinel in
# MULTISELECT_WITH_EXPLANATION questions.  Selecting one of them makes the
# explanation mandatory.  Dutch labels are included because the SUGB survey
# ships bilingual option lists.
OTHER_OPTION_LABELS: set[str] = {
    label.strip().lower()
    for label in os.getenv("SUGB_OTHER_OPTION_LABELS", "other,anders,overig,overige").split(",")
    if label.strip()
}

# Values accepted as the answer part of YES_NO_WITH_EXPLANATION questions.
YES_NO_VALUES: tuple[str, str] = ("yes", "no")

# Characters stripped from numeric input before parsing: whitespace,
# thousands separators, and the currency/percent signs the UI renders.
NUMERIC_NOISE_PATTERN = r"[\s,_€%]"
