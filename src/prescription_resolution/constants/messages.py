# ============================================================================
# src/prescription_resolution/constants/messages.py
# ============================================================================
"""
Human-facing notes attached to a prescription analysis.

Notes are shown to the customer and the pharmacist, so they are written in
Vietnamese.
"""

NOTE_UNREADABLE = "Không thể đọc được nội dung đơn thuốc. Vui lòng chụp lại ảnh rõ hơn hoặc liên hệ tư vấn viên."
NOTE_NO_MEDICINES = "Không tìm thấy thuốc nào. Vui lòng liên hệ tư vấn viên."
NOTE_NONE_MATCHED = "Không tìm thấy thuốc nào trong đơn có sẵn tại nhà thuốc. Dược sĩ sẽ tư vấn thuốc thay thế."
NOTE_SOME_NOT_FOUND = "Một số thuốc không có sẵn, vui lòng xem các thuốc gợi ý thay thế hoặc liên hệ dược sĩ."
NOTE_PRESCRIPTION_REQUIRED = "Một số thuốc cần đơn bác sĩ."
NOTE_LOW_STOCK = "Một số thuốc sắp hết hàng."
NOTE_OUT_OF_STOCK = "Một số thuốc hiện đang hết hàng."
NOTE_DUPLICATE_LINES = "Đơn thuốc có thuốc bị lặp lại, số lượng đã được cộng dồn."
NOTE_INCOMPLETE = "Phân tích đơn thuốc chưa hoàn tất do quá thời gian xử lý. Vui lòng liên hệ tư vấn viên."
NOTE_ALL_FOUND = "Tất cả thuốc trong đơn đều có sẵn."

# Suggestion explanations: one phrase per agreeing attribute, in this order
MATCH_LABELS = {
    "active_ingredient": "cùng hoạt chất",
    "dosage": "cùng hàm lượng",
    "category": "cùng nhóm thuốc",
    "subcategory": "cùng phân nhóm",
    "dosage_form": "cùng dạng bào chế",
    "route": "cùng đường dùng",
}
MATCH_LABEL_THERAPEUTIC_GROUP = "cùng nhóm điều trị"
