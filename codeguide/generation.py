"""Chat capability with grounding documents and citations.

Provides:
- ChatModel: protocol for the chat capability.
- ChatResult: generated text plus citations.
- OpenAIChat: ChatModel backed by OpenAI chat completions. Each grounding document is sent
  as its own labelled message so the model can cite it by id.
- extract_citations: turn "[doc_id]" markers in the model output into citation spans and
  strip them from the text.

Configuration is read from codeguide.config.settings.
"""
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from openai import AsyncOpenAI

from codeguide.config import settings
from codeguide.schemas import Citation

CITATION_INSTRUCTIONS = (
    "Each grounding document below is labelled with an id in square brackets. When a sentence "
    "of your answer uses a document, end that sentence with the document id in square brackets, "
    "for example [lang_Python]. Cite several documents as [id_a][id_b]. Only cite ids that appear "
    "in the documents."
)

_SPACED_MARKER = re.compile(r"\s*\[([^\[\]\s]+)\]")
_MARKER_GROUP = re.compile(r"(?:\s*\[[^\[\]\s]+\])+")
_SENTENCE_END = ".!?\n"


@dataclass
class ChatResult:
    text: str
    citations: List[Citation] = field(default_factory=list)


class ChatModel(Protocol):
    async def chat(
        self,
        message: str,
        documents: Sequence[Mapping[str, str]],
        preamble: str,
        temperature: float,
    ) -> ChatResult:
        ...


def _sentence_start(text: str, body_end: int, floor: int) -> int:
    start = max(text.rfind(c, 0, body_end) for c in _SENTENCE_END) + 1
    start = max(start, floor)
    while start < body_end and text[start].isspace():
        start += 1
    return start


def extract_citations(raw: str, document_ids: Sequence[str]) -> Tuple[str, List[Citation]]:
    """Strip citation markers from model output and build citation spans.

    A run of adjacent markers such as " [lang_Go][arch_Microservices]" cites the sentence
    it follows. Bracketed tokens that are not known document ids are left in the text, also
    when they sit inside such a run.

    Args:
        raw: Model output containing "[id]" markers.
        document_ids: Ids of the grounding documents that were supplied.

    Returns:
        Tuple[str, List[Citation]]: Clean text, and citations whose start/end index into it.
    """
    known = set(document_ids)
    clean = ""
    pos = 0
    last_cited = 0
    citations: List[Citation] = []

    for group in _MARKER_GROUP.finditer(raw):
        ids: List[str] = []
        markers = group.group(0)
        lead = markers[: len(markers) - len(markers.lstrip())]
        kept = ""
        for marker in _SPACED_MARKER.finditer(markers):
            doc_id = marker.group(1)
            if doc_id not in known:
                token = marker.group(0)
                # first kept token takes the group's leading space
                if not kept and not token[0].isspace():
                    token = lead + token
                kept += token
            elif doc_id not in ids:
                ids.append(doc_id)
        if not ids:
            continue
        clean += raw[pos:group.start()] + kept
        pos = group.end()

        end = len(clean)
        while end > 0 and clean[end - 1].isspace():
            end -= 1
        body_end = end - 1 if end > 0 and clean[end - 1] in ".!?" else end
        start = _sentence_start(clean, body_end, last_cited)
        if start < body_end:
            citations.append(
                Citation(start=start, end=body_end, text=clean[start:body_end], document_ids=ids)
            )
        last_cited = len(clean)

    clean += raw[pos:]
    return clean, citations


class OpenAIChat:
    """Chat capability using OpenAI chat completions.

    The client is created lazily; timeout and retry policy come from settings.
    """

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self._client = client
        self.model = model or settings.OPENAI_CHAT_MODEL

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=settings.OPENAI_MAX_RETRIES,
            )
        return self._client

    def build_messages(
        self, message: str, documents: Sequence[Mapping[str, str]], preamble: str
    ) -> Tuple[List[Dict[str, str]], List[str]]:
        """Build chat messages: persona, one message per grounding document, then the prompt.

        Returns:
            Tuple[List[Dict[str, str]], List[str]]: Messages and the document ids used as labels.
        """
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": f"{preamble}\n\n{CITATION_INSTRUCTIONS}"}
        ]
        ids: List[str] = []
        for i, doc in enumerate(documents):
            doc_id = doc.get("id") or f"doc_{i}"
            ids.append(doc_id)
            messages.append({"role": "system", "content": f"Document [{doc_id}]\n{doc['text']}"})
        messages.append({"role": "user", "content": message})
        return messages, ids

    async def chat(
        self,
        message: str,
        documents: Sequence[Mapping[str, str]],
        preamble: str,
        temperature: float,
    ) -> ChatResult:
        """Generate an answer grounded in the supplied documents.

        Args:
            message: The user prompt.
            documents: Grounding documents, each {"id": ..., "text": ...}.
            preamble: System persona / domain restriction.
            temperature: Decoding temperature.

        Returns:
            ChatResult: Answer text with citation markers removed, plus citations.
        """
        messages, ids = self.build_messages(message, documents, preamble)
        kwargs = {}
        if settings.MAX_OUTPUT_TOKENS:
            kwargs["max_tokens"] = settings.MAX_OUTPUT_TOKENS
        resp = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            **kwargs,
        )
        content = (resp.choices[0].message.content or "").strip()
        text, citations = extract_citations(content, ids)
        return ChatResult(text=text, citations=citations)
