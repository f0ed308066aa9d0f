# ============================================================================
# src/prescription_resolution/classifiers/prompts.py
# ============================================================================
"""
Classifier Prompt Templates
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class PromptTemplate:
    """Prompt template"""
    name: str
    template: str
    description: str
    required_fields: List[str] = field(default_factory=list)

    def format(self, **kwargs) -> str:
        """
        Format template with provided values.

        Raises:
            ValueError: If a required field is missing
        """
        missing = [f for f in self.required_fields if f not in kwargs]
        if missing:
            raise ValueError(f"Missing required fields for prompt '{self.name}': {missing}")
        return self.template.format(**kwargs)


TAXONOMY_PROMPT = PromptTemplate(
    name="medicine_taxonomy",
    description="Guess the four taxonomy attributes of a Vietnamese pharmacy product",
    required_fields=["name", "dosage"],
    template="""Bạn là dược sĩ. Phân loại thuốc sau theo danh mục của nhà thuốc.

Tên thuốc: {name}
Hàm lượng: {dosage}

Trả lời bằng JSON với đúng các khóa sau (để chuỗi rỗng nếu không chắc chắn):
{{
  "category": "nhóm thuốc, ví dụ: Thuốc cơ xương khớp, Thuốc giảm đau, hạ sốt",
  "subcategory": "nhóm con, ví dụ: NSAID, Corticosteroid, Paracetamol",
  "dosageForm": "dạng bào chế, ví dụ: Viên nén, Viên nang, Gel, Kem, Siro",
  "route": "đường dùng, ví dụ: Uống, Dùng ngoài, Nhỏ mắt",
  "activeIngredient": "hoạt chất chính",
  "analysisText": "một câu giải thích ngắn"
}}

Chỉ trả về JSON, không thêm giải thích ngoài JSON.""",
)


def build_taxonomy_prompt(name: str, dosage: str = None) -> str:
    return TAXONOMY_PROMPT.format(name=name.strip(), dosage=(dosage or "không rõ").strip())
