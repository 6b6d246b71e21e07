# API module - Evolution API transport
# One client per server, API key injected as a header, retries built in

from .client import EvolutionClient, USER_AGENT, parse_body

__all__ = ["EvolutionClient", "USER_AGENT", "parse_body"]
