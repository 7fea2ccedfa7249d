import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

log = logging.getLogger(__name__)

DEFAULT_NAME_TEMPLATE = "Jungle Creatures #{index:04d}"
DEFAULT_DESCRIPTION_TEMPLATE = "The jungle creatures collection on Movement"

# Engines hand over either a plain mapping or an ERC721-style list of
# {"trait_type": ..., "value": ...} entries.
Attributes = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]


@dataclass(frozen=True)
class ItemNamer:
    """
    Display name for an item index, rendered from a `str.format` template
    that receives `index`.
    """

    template: str = DEFAULT_NAME_TEMPLATE

    def __call__(self, index: int) -> str:
        return self.template.format(index=index)


class DescriptionGenerator:
    """
    Item description adapter.

    Without an LLM the description is the template rendered with `traits`
    (a "key: value" summary of the item's attributes). With an LLM (any
    object exposing LangChain's `invoke`) the model writes the description
    and the template is the fallback.
    """

    def __init__(
        self,
        template: str = DEFAULT_DESCRIPTION_TEMPLATE,
        llm: Any = None,
        collection_name: Optional[str] = None,
    ) -> None:
        self.template = template
        self.llm = llm
        self.collection_name = collection_name

    def __call__(self, attributes: Attributes) -> str:
        traits = describe_traits(attributes)
        fallback = self.template.format(traits=traits)
        if self.llm is None:
            return fallback

        prompt = self._build_prompt(traits=traits, fallback=fallback)
        try:
            raw = self.llm.invoke(prompt)
        except Exception as exc:
            log.warning("LLM description failed (%s); using template", exc)
            return fallback

        text = raw.content if hasattr(raw, "content") else raw
        return str(text or "").strip() or fallback

    def _build_prompt(self, *, traits: str, fallback: str) -> str:
        collection = self.collection_name or "a generative art collection"
        return (
            "You are writing item descriptions for a generative art collection.\n"
            "- Write one or two sentences, no hashtags, no emoji.\n"
            "- Mention the most distinctive traits naturally.\n"
            "- Return ONLY the description text.\n\n"
            "Context:\n"
            f'- Collection: "{collection}"\n'
            f"- Traits: {traits or 'none'}\n"
            f'- Default description: "{fallback}"\n'
        )


def describe_traits(attributes: Attributes) -> str:
    pairs: List[str] = []
    if isinstance(attributes, Mapping):
        pairs = [f"{k}: {v}" for k, v in attributes.items()]
    else:
        for entry in attributes or []:
            trait = entry.get("trait_type")
            value = entry.get("value")
            pairs.append(f"{trait}: {value}" if trait else str(value))
    return ", ".join(pairs)


def build_llm_from_env(env: Dict[str, str]) -> Any:
    """
    Return a LangChain chat model when OPENAI_API_KEY is configured,
    otherwise None (template-only descriptions, no network calls).
    """
    api_key = env.get("OPENAI_API_KEY")
    if not api_key:
        return None

    from langchain_openai import ChatOpenAI

    return ChatOpenAI(
        model=env.get("LAYERPIPE_LLM_MODEL", "gpt-4o-mini"),
        temperature=0.7,
        api_key=api_key,
    )
