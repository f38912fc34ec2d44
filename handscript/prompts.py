from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PromptVariant(str, Enum):
    VERBATIM_COUNT = "verbatim_count"
    RARE_BLANKS = "rare_blanks"
    CONFIDENCE_BLANKS = "confidence_blanks"


@dataclass(frozen=True)
class PromptPolicy:
    variant: PromptVariant
    blanks: Optional[str]       # None | "rare" | "confidence"
    preserve_lines: bool
    self_count: bool

    @classmethod
    def for_variant(cls, variant, preserve_lines: Optional[bool] = None) -> "PromptPolicy":
        variant = PromptVariant(variant)
        defaults = {
            PromptVariant.VERBATIM_COUNT: cls(variant, None, False, True),
            PromptVariant.RARE_BLANKS: cls(variant, "rare", False, False),
            PromptVariant.CONFIDENCE_BLANKS: cls(variant, "confidence", True, False),
        }[variant]
        if preserve_lines is None:
            return defaults
        return cls(variant, defaults.blanks, preserve_lines, defaults.self_count)


INTRO = "You are transcribing handwritten text from the attached image."

VERBATIM_RULES = r"""
RULES
- Transcribe ALL of the handwritten text exactly as written.
- Do not correct spelling, grammar or punctuation.
- Do not add commentary, headings or explanations.
- After transcribing, count the total number of words in your transcription.
"""

BLANK_PLACEHOLDERS = r"""
BLANKS
Replace an unreadable word with a blank sized to the word:
  • ___ for a short word (1-3 letters)
  • _____ for a medium word (4-6 letters)
  • ________ for a long word (7+ letters)
A blank counts as one word. Never invent a word to fill a gap.
"""

RARE_BLANK_RULES = r"""
RULES
- Transcribe nearly everything. Use context to read difficult handwriting.
- Use a blank ONLY when a word is truly illegible and cannot be inferred.
- Do not correct spelling, grammar or punctuation.
- Do not add commentary, headings or explanations.
"""

CONFIDENCE_BLANK_RULES = r"""
RULES
- Transcribe the handwriting word by word.
- If you are less than about 70% confident of a word, replace it with a blank.
  Being honest about uncertain words matters more than completeness.
- Do not correct spelling, grammar or punctuation.
- Do not add commentary, headings or explanations.
"""

PRESERVE_LINES_RULE = "- Preserve the original line breaks: start a new line wherever the writer did.\n"

JOIN_LINES_RULE = "- Join the text into normal paragraphs; do not reproduce the writer's line breaks.\n"

OUTPUT_WITH_COUNT = r"""
OUTPUT
Respond in this exact format and nothing else:

WORD COUNT: [number]

TRANSCRIPTION:
[the full transcribed text]
"""

OUTPUT_TRANSCRIPTION_ONLY = r"""
OUTPUT
Respond in this exact format and nothing else:

TRANSCRIPTION:
[the full transcribed text]
"""


def build_prompt(policy: PromptPolicy) -> str:
    parts = [INTRO]
    if policy.blanks == "confidence":
        rules = CONFIDENCE_BLANK_RULES
    elif policy.blanks == "rare":
        rules = RARE_BLANK_RULES
    else:
        rules = VERBATIM_RULES
    rules = rules.rstrip("\n") + "\n" + (PRESERVE_LINES_RULE if policy.preserve_lines else JOIN_LINES_RULE)
    parts.append(rules.strip())
    if policy.blanks:
        parts.append(BLANK_PLACEHOLDERS.strip())
    parts.append((OUTPUT_WITH_COUNT if policy.self_count else OUTPUT_TRANSCRIPTION_ONLY).strip())
    return "\n\n".join(parts)
