"""Static metadata describing EngSmart."""

APP_NAME = "EngSmart"
APP_VERSION = "0.1.0"
APP_ABOUT_TEXT = (
    "EngSmart generates multiple-choice English tests with Gemini, hands them to "
    "students through a short access code, and grades every submission on a 10-point scale."
)
