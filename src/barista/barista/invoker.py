"""Chat model access: system prompt construction and the tool-bound model call.

The system prompt is fetched from Langfuse prompt management and compiled
with the catalog summaries. A bundled fallback is used when Langfuse is not
configured or unreachable.
"""

import json

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_core.runnables import RunnableConfig
from langchain_core.tools import BaseTool
from langchain_mistralai import ChatMistralAI
from langfuse import Langfuse
from loguru import logger

from .config import Settings
from .errors import ModelInvocationError
from .models import Catalog, Order

PROMPT_NAME = "barista/order-agent"

FALLBACK_SYSTEM_PROMPT = """\
You are a friendly Starbucks barista assistant that helps customers order drinks.
Take the customer's request and fill in the details of a complete order.

ORDER SCHEMA:
{{order_schema}}

DRINKS AND THEIR ALLOWED OPTIONS:
{{drinks}}

ALL OPTIONS:
Sizes: {{sizes}}
Milks: {{milks}}
Syrups: {{syrups}}
Sweeteners: {{sweeteners}}
Toppings: {{toppings}}

TOOLS:
You have a "create_order" tool. It creates the order once the customer confirms it.
After calling it, tell the customer whether the order was created or why it failed.

RULES:
1. Ask for any missing details before asking the customer to confirm the order.
2. If the customer asks for an option the chosen drink does not allow, say it is not possible.
3. If the customer asks for something unrelated to drink orders, politely say you can
   only help with drink orders and keep the current order unchanged.
4. If the request is unclear, say so and ask the customer to rephrase.
5. When the order is complete, read it back and ask the customer to confirm it.
   Only call create_order AFTER the customer explicitly confirms.
6. Use null for fields that are not filled yet. Never invent drinks or options.
7. Be friendly and keep answers short. Emojis are welcome.

RESPONSE FORMAT:
Every answer MUST end with a JSON object in a ```json fenced block with exactly
these four fields:
```json
{
  "message": "Your message to the customer",
  "current_order": {"drink": null, "size": null, "milk": null, "syrup": null, "sweetener": null, "toppings": [], "status": "draft"},
  "suggestions": ["Short options the customer can pick next"],
  "progress": "in_progress"
}
```
Set "status" to "confirmed" once the customer confirms, and "progress" to
"completed" only after create_order succeeded. Never omit the JSON block.\
"""


def get_system_prompt_template(settings: Settings) -> str:
    """Fetch the system prompt template from Langfuse.

    Falls back to FALLBACK_SYSTEM_PROMPT if Langfuse is unavailable
    (no API keys, network error, prompt not seeded yet).

    Returns the raw template string with {{variable}} placeholders.
    """
    if not settings.langfuse_enabled:
        logger.info("Langfuse keys not configured, using fallback system prompt")
        return FALLBACK_SYSTEM_PROMPT

    try:
        langfuse = Langfuse(
            public_key=settings.langfuse_public_key,
            secret_key=settings.langfuse_secret_key,
            host=settings.langfuse_base_url,
        )
        prompt = langfuse.get_prompt(PROMPT_NAME, label="production")
        logger.info("Fetched system prompt from Langfuse: {}", PROMPT_NAME)
        # Chat prompts carry the template in their system message
        if isinstance(prompt.prompt, list):
            for msg in prompt.prompt:
                if msg.get("role") == "system":
                    return msg["content"]
        return prompt.prompt
    except Exception:
        logger.opt(exception=True).warning(
            "Failed to fetch prompt from Langfuse, using fallback"
        )
        return FALLBACK_SYSTEM_PROMPT


def build_system_prompt(template: str, catalog: Catalog) -> str:
    """Compile the prompt template (replace {{var}} with catalog data)."""
    variables = {
        "order_schema": json.dumps(Order.model_json_schema(), indent=2),
        "drinks": catalog.drinks_summary(),
        "sizes": catalog.sizes_summary(),
        "milks": catalog.milks_summary(),
        "syrups": catalog.syrups_summary(),
        "sweeteners": catalog.sweeteners_summary(),
        "toppings": catalog.toppings_summary(),
    }
    compiled = template
    for name, value in variables.items():
        compiled = compiled.replace("{{" + name + "}}", value)
    return compiled


def create_chat_model(settings: Settings) -> ChatMistralAI:
    """Create the Mistral chat model used by the agent."""
    logger.info(
        "Initializing LLM: model={}, temperature={}, timeout={}s",
        settings.mistral_model,
        settings.mistral_temperature,
        settings.model_timeout,
    )
    return ChatMistralAI(
        model=settings.mistral_model,
        temperature=settings.mistral_temperature,
        api_key=settings.mistral_api_key,
        timeout=settings.model_timeout,
        # Single attempt; retries are decided by the agent step
        max_retries=1,
    )


class ModelInvoker:
    """Calls the chat model with the order tool bound and the catalog prompt."""

    def __init__(
        self,
        llm: BaseChatModel,
        catalog: Catalog,
        tools: list[BaseTool],
        prompt_template: str = FALLBACK_SYSTEM_PROMPT,
    ) -> None:
        self._llm = llm.bind_tools(tools)
        self.system_prompt = build_system_prompt(prompt_template, catalog)

    def invoke(
        self, history: list[BaseMessage], config: RunnableConfig | None = None
    ) -> AIMessage:
        """Return the model's next turn: a final answer or a tool request.

        Raises ModelInvocationError on any provider, network or timeout failure.
        """
        messages = [SystemMessage(content=self.system_prompt), *history]
        logger.debug("Invoking model with {} messages", len(messages))
        try:
            response = self._llm.invoke(messages, config=config)
        except Exception as exc:
            raise ModelInvocationError(f"Model invocation failed: {exc}") from exc

        if response.tool_calls:
            logger.info(
                "Model requesting tools: {}",
                ", ".join(tc["name"] for tc in response.tool_calls),
            )
        else:
            logger.info("Model responding directly (no tool calls)")
        return response
