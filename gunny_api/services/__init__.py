"""Services package for Gunny API.

Backend transport, prompt composition and gateway composition.

Author: Gunny Team
Version: 1.0.0
"""

from gunny_api.services.client_ip_service import ClientIPExtractor
from gunny_api.services.gateway import Gateway
from gunny_api.services.generation_proxy import GenerationProxy, SamplingDefaults
from gunny_api.services.llm_client import LLMClient
from gunny_api.services.prompt_manager import PromptManager

__all__ = [
    "ClientIPExtractor",
    "Gateway",
    "GenerationProxy",
    "LLMClient",
    "PromptManager",
    "SamplingDefaults",
]
