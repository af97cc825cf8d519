"""Constants and builders shared by test modules."""

SUBMIT_TOKEN = "test-submit-token"


def expo_token(n: int) -> str:
    return f"ExponentPushToken[device-{n:04d}]"
