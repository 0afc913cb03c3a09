"""
HL7 Codec

Separator handling, escaping and trimming rules shared by the reader and
the writer.

HL7 Value Structure Basics:
- Fields are separated by pipes (|)
- Repetitions within a field are separated by tildes (~)
- Components within a repetition are separated by carets (^)
- Subcomponents within a component are separated by ampersands (&)
- Separator characters inside text are written as escape sequences,
  e.g. "\\F\\" for a pipe

Values are represented with plain Python types:
- a field is a str, a tuple of components (one repetition) or a list of
  repetitions
- a repetition is a str or a tuple of components
- a component is a str or a tuple of subcomponent strings

Any level holding a single item collapses to that item, so "Doe^John" is
("Doe", "John") and "Doe" is just "Doe".
"""

from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Tuple, Union

from .exceptions import InvalidSeparatorsError


Component = Union[str, Tuple[str, ...]]
Repetition = Union[str, Tuple[Component, ...]]
Value = Union[str, Tuple[Component, ...], List[Repetition]]

# Single-letter codes used inside escape sequences
FIELD_CODE = "F"
REPETITION_CODE = "R"
COMPONENT_CODE = "S"
SUBCOMPONENT_CODE = "T"
ESCAPE_CODE = "E"

# Characters that can never be separators because they end segments
SEGMENT_BREAKS = ("\r", "\n")


@dataclass(frozen=True)
class Separators:
    """
    The five characters that govern parsing of a message.

    Attributes:
        field: Field separator (MSH-1), default "|"
        component: Component separator, default "^"
        repetition: Repetition separator, default "~"
        escape: Escape character, default "\\"
        subcomponent: Subcomponent separator, default "&"
    """

    field: str = "|"
    component: str = "^"
    repetition: str = "~"
    escape: str = "\\"
    subcomponent: str = "&"

    def __post_init__(self):
        chars = self.as_tuple()
        for char in chars:
            if not isinstance(char, str) or len(char) != 1:
                raise InvalidSeparatorsError(
                    chars, "every separator must be a single character"
                )
            if char in SEGMENT_BREAKS or char.isalnum():
                raise InvalidSeparatorsError(
                    chars, f"{char!r} cannot be used as a separator"
                )
        if len(set(chars)) != len(chars):
            raise InvalidSeparatorsError(chars, "separators must be distinct")

    def as_tuple(self) -> Tuple[str, str, str, str, str]:
        return (
            self.field,
            self.component,
            self.repetition,
            self.escape,
            self.subcomponent,
        )

    @property
    def encoding_characters(self) -> str:
        """The MSH-2 form: component, repetition, escape, subcomponent."""
        return self.component + self.repetition + self.escape + self.subcomponent

    def __str__(self) -> str:
        return self.field + self.encoding_characters


DEFAULT_SEPARATORS = Separators()


def compile_separators(spec=None, **options) -> Separators:
    """
    Build a separator set from a configuration value.

    Args:
        spec: None for the defaults, a header-form string such as "|^~\\&"
            (field, component, repetition, escape, subcomponent), a mapping
            with the attribute names of Separators, or a Separators instance
        **options: Individual characters overriding the ones in spec
            (field, component, repetition, escape, subcomponent)

    Returns:
        Separators instance

    Raises:
        InvalidSeparatorsError: If the characters are not five distinct
            single characters

    Example:
        compile_separators("|^~\\&")           # the default set
        compile_separators(component="#")      # defaults with "#" components
    """
    if spec is None:
        separators = DEFAULT_SEPARATORS
    elif isinstance(spec, Separators):
        separators = spec
    elif isinstance(spec, str):
        if len(spec) != 5:
            raise InvalidSeparatorsError(spec, "expected exactly 5 characters")
        separators = Separators(*spec)
    elif isinstance(spec, Mapping):
        separators = _replace_separators(DEFAULT_SEPARATORS, spec)
    else:
        raise InvalidSeparatorsError(spec, "unsupported separator specification")

    if options:
        separators = _replace_separators(separators, options)
    return separators


def _replace_separators(separators: Separators, options: Mapping) -> Separators:
    unknown = set(options) - {
        "field",
        "component",
        "repetition",
        "escape",
        "subcomponent",
    }
    if unknown:
        raise InvalidSeparatorsError(
            dict(options), f"unknown separator names: {', '.join(sorted(unknown))}"
        )
    return replace(separators, **options)


def separators_from_header(field_separator: str, encoding_characters: str) -> Separators:
    """
    Build the separator set declared by a header segment (MSH-1 and MSH-2).

    Four encoding characters are expected. HL7 2.7 adds a fifth truncation
    character, which is accepted and ignored.

    Raises:
        InvalidSeparatorsError: If the declaration is unusable
    """
    if len(encoding_characters) not in (4, 5):
        raise InvalidSeparatorsError(
            field_separator + encoding_characters,
            "header must declare 4 encoding characters",
        )
    return Separators(field_separator, *encoding_characters[:4])


def with_escape_char(separators: Optional[Separators], escape_char: Optional[str]) -> Separators:
    separators = separators or DEFAULT_SEPARATORS
    if escape_char is not None and escape_char != separators.escape:
        separators = replace(separators, escape=escape_char)
    return separators


def _escape_codes(separators: Separators) -> dict:
    return {
        separators.field: FIELD_CODE,
        separators.repetition: REPETITION_CODE,
        separators.component: COMPONENT_CODE,
        separators.subcomponent: SUBCOMPONENT_CODE,
        separators.escape: ESCAPE_CODE,
    }


def escape(
    text: str,
    separators: Optional[Separators] = None,
    escape_char: Optional[str] = None,
) -> str:
    """
    Replace separator characters in text with HL7 escape sequences.

    Args:
        text: Text that may contain separator characters
        separators: Separator set in use (default "|^~\\&")
        escape_char: Escape character overriding separators.escape

    Returns:
        The escaped text

    Example:
        escape("A|B")   # Returns "A\\F\\B"
    """
    separators = with_escape_char(separators, escape_char)
    codes = _escape_codes(separators)
    if not any(char in codes for char in text):
        return text

    esc = separators.escape
    result = []
    for char in text:
        code = codes.get(char)
        if code is None:
            result.append(char)
        else:
            result.append(esc + code + esc)
    return "".join(result)


def unescape(
    text: str,
    separators: Optional[Separators] = None,
    escape_char: Optional[str] = None,
) -> str:
    """
    Convert HL7 escape sequences back into the characters they stand for.

    Decoding is lenient and never fails:
    - an unknown sequence such as "\\H\\" is kept as it is
    - an escape character with no closing escape character is kept as a
      literal character

    Args:
        text: Escaped text
        separators: Separator set the text was escaped with
        escape_char: Escape character overriding separators.escape

    Returns:
        The unescaped text

    Example:
        unescape("A\\F\\B")   # Returns "A|B"
    """
    separators = with_escape_char(separators, escape_char)
    esc = separators.escape
    if esc not in text:
        return text

    chars = {code: char for char, code in _escape_codes(separators).items()}
    result = []
    index = 0
    length = len(text)
    while index < length:
        start = text.find(esc, index)
        if start < 0:
            result.append(text[index:])
            break
        result.append(text[index:start])

        end = text.find(esc, start + 1)
        if end < 0:
            # Unterminated sequence: the rest is literal text
            result.append(text[start:])
            break

        char = chars.get(text[start + 1 : end])
        if char is None:
            result.append(text[start : end + 1])
        else:
            result.append(char)
        index = end + 1

    return "".join(result)


def _trim_trailing(items: list) -> list:
    while items and items[-1] == "":
        items.pop()
    return items


def _trim_component(component: Component) -> Component:
    if not isinstance(component, tuple):
        return "" if component is None else component
    items = _trim_trailing(["" if item is None else item for item in component])
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return tuple(items)


def _trim_repetition(repetition: Repetition) -> Repetition:
    if not isinstance(repetition, tuple):
        return _trim_component(repetition)
    items = _trim_trailing([_trim_component(c) for c in repetition])
    if not items:
        return ""
    # A lone component with subcomponents keeps its wrapper tuple, otherwise
    # the subcomponents would be read back as components.
    if len(items) == 1 and not isinstance(items[0], tuple):
        return items[0]
    return tuple(items)


def trim(value: Value) -> Value:
    """
    Reduce a value to its optimal layout.

    Trailing empty items are removed at every level, innermost first.
    Empty items followed by a non-empty one stay as placeholders, and a
    level left with a single item collapses to that item.

    Example:
        trim(("Doe", "John", "", ""))      # Returns ("Doe", "John")
        trim(["", ("A", "")])              # Returns ["", "A"]
        trim(("", ("", "")))               # Returns ""
    """
    if not isinstance(value, list):
        return _trim_repetition(value)

    items = _trim_trailing([_trim_repetition(r) for r in value])
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    return items


def _decode_component(text: str, separators: Separators) -> Component:
    subcomponents = text.split(separators.subcomponent)
    if len(subcomponents) == 1:
        return unescape(text, separators)
    return tuple(unescape(item, separators) for item in subcomponents)


def _decode_repetition(text: str, separators: Separators) -> Repetition:
    components = text.split(separators.component)
    if len(components) == 1:
        component = _decode_component(text, separators)
        return component if isinstance(component, str) else (component,)
    return tuple(_decode_component(item, separators) for item in components)


def decode_value(text: str, separators: Separators = DEFAULT_SEPARATORS) -> Value:
    """
    Split the text of one field into its hierarchical value.

    Structural splitting happens first and leaves are unescaped last, so an
    escaped separator never splits the value.

    Example:
        decode_value("Doe^John~Roe&Sub")
        # Returns [("Doe", "John"), (("Roe", "Sub"),)]
    """
    repetitions = text.split(separators.repetition)
    if len(repetitions) == 1:
        return _decode_repetition(text, separators)
    return [_decode_repetition(item, separators) for item in repetitions]


def _encode_leaf(leaf, separators: Separators) -> str:
    if leaf is None:
        return ""
    return escape(str(leaf), separators)


def _encode_component(component, separators: Separators) -> str:
    if isinstance(component, tuple):
        return separators.subcomponent.join(
            _encode_leaf(item, separators) for item in component
        )
    return _encode_leaf(component, separators)


def _encode_repetition(repetition, separators: Separators) -> str:
    if isinstance(repetition, tuple):
        return separators.component.join(
            _encode_component(item, separators) for item in repetition
        )
    return _encode_component(repetition, separators)


def encode_value(value: Value, separators: Separators = DEFAULT_SEPARATORS) -> str:
    """
    Join a hierarchical value back into field text, escaping every leaf.

    Example:
        encode_value([("Doe", "John"), "A|B"])   # Returns "Doe^John~A\\F\\B"
    """
    if isinstance(value, list):
        return separators.repetition.join(
            _encode_repetition(item, separators) for item in value
        )
    return _encode_repetition(value, separators)
