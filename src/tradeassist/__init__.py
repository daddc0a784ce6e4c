"""TradeAssist - conversational shopping assistant for a trading group storefront.

TradeAssist answers storefront chat requests by combining rate limiting,
persisted multi-turn conversations, retrieval over the product catalog and
knowledge base, and a function-calling generation loop whose output is
streamed back to the browser as server-sent events.

Key modules:

- :mod:`tradeassist.chat` - ChatOrchestrator turn state machine and output sanitizer
- :mod:`tradeassist.ratelimit` - Keyed fixed-window rate limiter
- :mod:`tradeassist.memory` - SQLite-backed conversation store
- :mod:`tradeassist.rag` - Product/knowledge retrieval and system prompt assembly
- :mod:`tradeassist.tools` - Shopping tools, executor and visual payload projection
- :mod:`tradeassist.llm` - Streaming generation backend abstraction
- :mod:`tradeassist.server` - FastAPI application and SSE chat endpoint
"""

__version__ = "0.1.0"
