"""System instruction assembly from retrieved context and caller profile."""

from dataclasses import dataclass, field
from enum import Enum

from tradeassist.rag.retrieval import RetrievalBundle

PRODUCT_SNIPPET_CHARS = 150
KNOWLEDGE_SNIPPET_CHARS = 200


class PromptTier(str, Enum):
    """How much guidance the system instruction carries."""

    LITE = "lite"
    STANDARD = "standard"
    FULL = "full"


@dataclass(frozen=True)
class CallerProfile:
    """What the assistant may know about the caller."""

    name: str | None = None
    customer_id: str | None = None
    preferred_categories: list[str] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.customer_id is not None


_PERSONA = {
    "en": (
        "You are the shopping assistant of a trading group that supplies raw plastics, "
        "polymers (HDPE, LDPE, PP, PVC, PET, PS), masterbatch and additives. "
        "Help customers find materials, compare options and plan purchases within budget."
    ),
    "ar": (
        "أنت مساعد التسوق لمجموعة تجارية توفر الخامات البلاستيكية والبوليمرات "
        "(HDPE، LDPE، PP، PVC، PET، PS) والماستر باتش والإضافات. "
        "ساعد العملاء في إيجاد الخامات ومقارنة الخيارات وتخطيط مشترياتهم ضمن الميزانية."
    ),
}

_LANGUAGE = {
    "en": "Always reply in English. Prices are in Egyptian pounds (EGP).",
    "ar": "أجب دائماً باللغة العربية. الأسعار بالجنيه المصري.",
}

_TOOL_RULES = {
    "en": (
        "Use the available functions for live catalog data: prices, stock, comparisons, "
        "budget plans, cart contents, orders and shipping. Never invent products, prices "
        "or order details. Do not describe the functions you call or quote their raw output; "
        "answer the customer directly."
    ),
    "ar": (
        "استخدم الدوال المتاحة للحصول على بيانات الكتالوج الحية: الأسعار والمخزون والمقارنات "
        "وخطط الميزانية ومحتوى السلة والطلبات والشحن. لا تخترع منتجات أو أسعاراً أو تفاصيل "
        "طلبات. لا تصف الدوال التي تستدعيها ولا تنقل نتائجها حرفياً، بل أجب العميل مباشرة."
    ),
}

_FORMATTING = {
    "en": (
        "Keep answers short and scannable. Product cards are shown to the customer "
        "automatically, so summarize instead of listing every field. Mention stock "
        "limits and free shipping from 5000 EGP when relevant. For order questions from "
        "guests, ask them to sign in."
    ),
    "ar": (
        "اجعل الإجابات قصيرة وسهلة القراءة. تُعرض بطاقات المنتجات للعميل تلقائياً، "
        "لذا لخّص بدلاً من سرد كل التفاصيل. اذكر حدود المخزون والشحن المجاني من 5000 جنيه "
        "عند الحاجة. لأسئلة الطلبات من الزوار، اطلب منهم تسجيل الدخول."
    ),
}

_CONTEXT_HEADING = {
    "en": "Reference information (use it when relevant):",
    "ar": "معلومات مرجعية (استخدمها عند الحاجة):",
}

_SOURCE_HEADINGS = {
    "en": ("Products", "Knowledge base"),
    "ar": ("المنتجات", "قاعدة المعرفة"),
}


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "..."


def format_context(bundle: RetrievalBundle, locale: str = "ar") -> str:
    """Render retrieved hits as numbered lists, one per source.

    Args:
        bundle: Retrieval results
        locale: Locale for headings

    Returns:
        Context text, or an empty string when nothing was retrieved
    """
    product_heading, knowledge_heading = _SOURCE_HEADINGS.get(locale, _SOURCE_HEADINGS["en"])
    sections: list[str] = []

    for heading, hits, budget in (
        (product_heading, bundle.products, PRODUCT_SNIPPET_CHARS),
        (knowledge_heading, bundle.knowledge, KNOWLEDGE_SNIPPET_CHARS),
    ):
        if not hits:
            continue
        lines = [f"{heading}:"]
        for n, hit in enumerate(hits, start=1):
            title = hit.title or hit.item_id
            lines.append(f"{n}. {title} ({hit.score:.0%}) - {_truncate(hit.snippet, budget)}")
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


class PromptAssembler:
    """Builds the system instruction for a turn. Pure, no I/O."""

    def build(
        self,
        tier: PromptTier | str,
        profile: CallerProfile | None,
        context_text: str,
        locale: str = "ar",
    ) -> str:
        """Assemble the system instruction.

        Args:
            tier: Guidance level
            profile: Caller profile, if known
            context_text: Output of :func:`format_context`
            locale: Reply language ("ar" or "en")

        Returns:
            System instruction text
        """
        tier = PromptTier(tier)
        lang = locale if locale in _PERSONA else "en"

        blocks = [_PERSONA[lang], _LANGUAGE[lang]]
        if tier in (PromptTier.STANDARD, PromptTier.FULL):
            blocks.append(_TOOL_RULES[lang])
        if tier is PromptTier.FULL:
            blocks.append(_FORMATTING[lang])

        if profile is not None:
            blocks.append(self._profile_block(profile, lang))

        if context_text.strip():
            blocks.append(f"{_CONTEXT_HEADING[lang]}\n{context_text.strip()}")

        return "\n\n".join(blocks)

    @staticmethod
    def _profile_block(profile: CallerProfile, lang: str) -> str:
        if lang == "ar":
            lines = ["العميل:"]
            lines.append("- مسجل الدخول" if profile.is_authenticated else "- زائر غير مسجل")
            if profile.name:
                lines.append(f"- الاسم: {profile.name}")
            if profile.preferred_categories:
                lines.append(f"- اهتمامات: {', '.join(profile.preferred_categories)}")
        else:
            lines = ["Customer:"]
            lines.append("- signed in" if profile.is_authenticated else "- guest")
            if profile.name:
                lines.append(f"- name: {profile.name}")
            if profile.preferred_categories:
                lines.append(f"- interests: {', '.join(profile.preferred_categories)}")
        return "\n".join(lines)
