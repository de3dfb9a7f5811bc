from dataclasses import dataclass

from config import SECTIONS


class CatalogError(ValueError):
    """Raised when a question catalog cannot be loaded."""


@dataclass(frozen=True)
class Question:
    code: str
    text: str
    section: str
    serviceArea: str

    @classmethod
    def from_dict(cls, data, position=None):
        where = f"question {position}" if position is not None else "question"
        if not isinstance(data, dict):
            raise CatalogError(f"{where} must be an object")

        values = {}
        for field in ('code', 'text', 'section', 'serviceArea'):
            value = data.get(field)
            if not isinstance(value, str) or not value.strip():
                raise CatalogError(f"{where} is missing '{field}'")
            values[field] = value.strip()

        values['section'] = values['section'].upper()
        if values['section'] not in SECTIONS:
            raise CatalogError(
                f"{where} has unknown section '{values['section']}'. Expected one of: {', '.join(SECTIONS)}"
            )
        return cls(**values)

    def to_dict(self):
        return {
            'code': self.code,
            'text': self.text,
            'section': self.section,
            'serviceArea': self.serviceArea,
        }
