"""Studio Bridge - Roblox Studio plugin bridge service.

Lets synchronous HTTP callers drive a polling Studio plugin:
- Dispatcher: work queue, result correlation, bounded long-polling
- Plugin routes: GET /request (long-poll pickup), POST /response (results)
- Prompt route: Gemini text generation, luau code extraction, execution
"""

__version__ = "0.1.0"
