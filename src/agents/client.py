"""OpenAI client initialisation shared by the tutor agents."""

import os

from openai import OpenAI

from src.utils import config  # noqa: F401  (loads .env)


def get_client() -> OpenAI:
    """Return an initialised OpenAI client."""
    api_key = os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise EnvironmentError(
            "OPENAI_API_KEY is not set. "
            "Add it to your environment or to a .env file in the project root."
        )
    return OpenAI(api_key=api_key)
