# ============================================================================
# src/prescription_resolution/constants/vocabulary.py
# ============================================================================
"""
Prescription text vocabulary.

Keyword and pattern tables shared by the OCR normalizer, the line
segmenter, the line validator and the name parser. Vietnamese prescriptions
are the primary input; common English equivalents are included.
"""

import re

# Letter class that covers Vietnamese diacritics
LETTER = r"[^\W\d_]"

# ----------------------------------------------------------------------------
# Units
# ----------------------------------------------------------------------------

# Strength units recognized inside dosage expressions
DOSAGE_UNITS = ["mcg", "µg", "mg", "ml", "iu", "ui", "g", "l", "%"]

# Units that follow a count ("20 viên", "2 hộp") and denote quantity
QUANTITY_UNITS = [
    "viên", "vien", "hộp", "hop", "chai", "gói", "goi", "lọ", "lo",
    "tuýp", "tuyp", "ống", "ong", "vỉ", "vi", "túi", "tui", "tube",
    "tablets", "tablet", "caps", "capsules",
]

# ----------------------------------------------------------------------------
# OCR repair tables
# ----------------------------------------------------------------------------

# Lowercase letters OCR emits in place of digits
DIGIT_CONFUSIONS = {
    "o": "0",
    "l": "1",
    "i": "1",
    "s": "5",
    "z": "2",
    "b": "6",
    "g": "9",
}

# Truncated fragment -> full drug name (OCR drops the leading syllable)
TRUNCATED_DRUG_PREFIXES = {
    "racetamol": "Paracetamol",
    "aracetamol": "Paracetamol",
    "clofenac": "Diclofenac",
    "iclofenac": "Diclofenac",
    "oxicillin": "Amoxicillin",
    "moxicillin": "Amoxicillin",
    "lecoxib": "Celecoxib",
    "elecoxib": "Celecoxib",
    "ednisolon": "Prednisolon",
    "rednisolon": "Prednisolon",
    "thylprednisolon": "Methylprednisolon",
    "meprazol": "Omeprazol",
    "someprazol": "Esomeprazol",
    "loxicam": "Meloxicam",
    "eloxicam": "Meloxicam",
    "ltaren": "Voltaren",
    "oltaren": "Voltaren",
    "xamethason": "Dexamethason",
    "examethason": "Dexamethason",
    "buprofen": "Ibuprofen",
    "ricoxib": "Etoricoxib",
    "toricoxib": "Etoricoxib",
    "zithromycin": "Azithromycin",
    "ithromycin": "Azithromycin",
    "methicon": "Simethicon",
    "imethicon": "Simethicon",
    "altagit": "Maltagit",
}

# Unaccented OCR output -> Vietnamese keyword (applied case-insensitively)
ACCENT_RESTORATIONS = [
    (r"\bBac\s*si\b", "Bác sĩ"),
    (r"\bBac\s*sy\b", "Bác sỹ"),
    (r"\bChan\s+doan\b", "Chẩn đoán"),
    (r"\bChẩn\s+doan\b", "Chẩn đoán"),
    (r"\bLoi\s+dan\b", "Lời dặn"),
    (r"\bLời\s+dan\b", "Lời dặn"),
    (r"\bBenh\s+vien\b", "Bệnh viện"),
    (r"\bPhong\s+kham\b", "Phòng khám"),
    (r"\bHo\s+va\s+ten\b", "Họ và tên"),
    (r"\bHo\s+ten\b", "Họ tên"),
    (r"\bGhi\s+chu\b", "Ghi chú"),
    (r"\bTai\s+kham\b", "Tái khám"),
    (r"\bThuoc\s+dieu\s+tri\b", "Thuốc điều trị"),
    (r"\bDon\s+thuoc\b", "Đơn thuốc"),
    (r"\b(?-i:Ngay)\b", "Ngày"),
]

# ----------------------------------------------------------------------------
# Segmentation
# ----------------------------------------------------------------------------

# Ordinal marker at the start of a line: "1.", "2)", "3/", "4 -", "5:"
ORDINAL_PREFIX = re.compile(r"^\s*(\d{1,2})\s*[.)/:\-]\s*(?=[^\W\d_]|\()")

# Ordinal entry appearing later on a header line: "Thuốc điều trị: 1. Paracetamol"
INLINE_ORDINAL = re.compile(r"(?:^|\s)(\d{1,2})\s*[.)]\s*(?=[^\W\d_])")

# Header lines that open the medicine list
SECTION_HEADER_PATTERNS = [
    re.compile(r"\bthuốc\s+điều\s+trị\b", re.IGNORECASE),
    re.compile(r"\bchỉ\s+định\s+(?:dùng\s+)?thuốc\b", re.IGNORECASE),
    re.compile(r"\btoa\s+thuốc\b", re.IGNORECASE),
    re.compile(r"^\s*đơn\s+thuốc\b", re.IGNORECASE),
    re.compile(r"^\s*thuốc\s*:", re.IGNORECASE),
    re.compile(r"^\s*rx\b\s*:?", re.IGNORECASE),
    re.compile(r"^\s*(?:medications?|prescription)\s*:", re.IGNORECASE),
]

# Footer lines that close the medicine list
STOP_PATTERNS = [
    ("advice", re.compile(r"^\s*lời\s+(?:dặn|khuyên)", re.IGNORECASE)),
    ("follow_up", re.compile(r"^\s*(?:hẹn\s+)?tái\s+khám", re.IGNORECASE)),
    ("doctor", re.compile(r"^\s*(?:bác\s+s[ĩỹiy]|bs\.?\s|y\s+sĩ)", re.IGNORECASE)),
    ("signature", re.compile(r"(?:ký\s*(?:tên|,\s*ghi\s+rõ)|chữ\s+ký|signature)", re.IGNORECASE)),
    ("clinic", re.compile(r"^\s*(?:phòng\s+khám|bệnh\s+viện|trung\s+tâm\s+y\s+tế)", re.IGNORECASE)),
    ("phone", re.compile(r"^\s*(?:điện\s+thoại|đt|sđt|tel|phone)\s*[:.]?", re.IGNORECASE)),
    ("footer_date", re.compile(r"ngày\s*\d{1,2}\s*tháng\s*\d{1,2}\s*năm\s*\d{2,4}", re.IGNORECASE)),
    ("total", re.compile(r"^\s*cộng\s+khoản", re.IGNORECASE)),
]

# Dosing schedule lines ("Sáng 1 viên, Tối 1 viên", "Ngày uống 2 lần")
DOSING_SCHEDULE_PATTERN = re.compile(
    r"(?:^|[\s,;\-–])(?:sáng|trưa|chiều|tối|uống|bôi|ngậm|nhỏ\s+\d|mỗi\s+lần|lần)\b"
    r"|(?:^|\s)ngày\s+(?:uống|dùng|bôi|\d+\s*lần)",
    re.IGNORECASE,
)

# Line that opens with a usage instruction rather than a drug name
SCHEDULE_LINE_START = re.compile(
    r"^[\W_]*(?:sáng|trưa|chiều|tối|ngày|uống|bôi|ngậm|nhỏ|mỗi|lần|cách\s+dùng|"
    r"hướng\s+dẫn|ghi\s+chú|sl)\b",
    re.IGNORECASE,
)

# Words that mark a line as part of a drug description
DRUG_COMPONENT_VOCABULARY = re.compile(
    r"\b(?:hydrochlorid|hcl|natri|sodium|kali|potassium|calci|calcium|magnesi|"
    r"acid|base|diethylamin|maleat|sulfat|phosphat|citrat|trihydrat|"
    r"viên\s+(?:nén|nang|sủi)|bao\s+phim|emulgel|gel|kem|cream|siro|syrup|"
    r"hỗn\s+dịch|dung\s+dịch|thuốc\s+mỡ)\b",
    re.IGNORECASE,
)

# ----------------------------------------------------------------------------
# Validation
# ----------------------------------------------------------------------------

# Section keywords that introduce non-medicine content
NON_MEDICINE_KEYWORDS = [
    "họ và tên", "họ tên", "tên bệnh nhân", "bệnh nhân", "tuổi", "năm sinh",
    "giới tính", "giới", "địa chỉ", "bác sĩ", "bác sỹ", "bs", "y sĩ",
    "mã số bhyt", "số thẻ bhyt", "thẻ bhyt", "bhyt", "mã bn", "mã y tế",
    "chẩn đoán", "điện thoại", "sđt", "đt", "ngày khám", "khoa",
    "patient", "name", "address", "doctor", "physician", "insurance",
    "diagnosis", "phone", "age", "gender",
]

# Word-bounded keyword at line start, capturing an optional label separator.
# Longest keywords first so "họ và tên" wins over "họ tên".
NON_MEDICINE_KEYWORD_PATTERNS = [
    (keyword, re.compile(r"^" + re.escape(keyword) + r"(?!\w)\s*([:.\-]?)\s*", re.IGNORECASE))
    for keyword in sorted(NON_MEDICINE_KEYWORDS, key=len, reverse=True)
]

# Diagnosis code token: "K21", "J06.9", "M54.5"
DIAGNOSIS_CODE = re.compile(r"\b[A-Z]\d{2,3}(?:\.\d{1,2})?\b")

# ----------------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------------

# Start of a trailing usage clause inside a medicine line
USAGE_CLAUSE_PATTERN = re.compile(
    r"(?:\s*[-–:,;]\s*|\s+)(?=(?:sáng|trưa|chiều|tối|ngày\s+(?:uống|dùng|bôi|\d)|"
    r"uống|bôi|ngậm|nhỏ\s+\d|mỗi\s+lần|cách\s+dùng|hướng\s+dẫn|ghi\s+chú)\b)",
    re.IGNORECASE,
)

# Explicit quantity token "SL: 20" (optionally followed by a unit)
SL_QUANTITY_PATTERN = re.compile(
    r"\bS\.?L\.?\s*[:.]?\s*(\d+)\s*(?:" + "|".join(QUANTITY_UNITS) + r")?(?!" + LETTER + r")",
    re.IGNORECASE,
)

# "20 viên", "2 hộp"
UNIT_QUANTITY_PATTERN = re.compile(
    r"(?<![\d.,])(\d+)\s*(?:" + "|".join(QUANTITY_UNITS) + r")(?!" + LETTER + r")",
    re.IGNORECASE,
)

# "x 20", "x20"
MULTIPLIER_QUANTITY_PATTERN = re.compile(r"(?<!" + LETTER + r")[xX×]\s*(\d+)(?![\d.,%]|\s*(?:mg|g|ml|mcg)\b)")
