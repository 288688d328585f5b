from lark_aily.api.aily import AilyApi, AilyMessageResource, AilyRunResource, AilySessionResource

__all__ = [
    "AilyApi",
    "AilyMessageResource",
    "AilyRunResource",
    "AilySessionResource",
]
