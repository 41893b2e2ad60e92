# core/constants.py
"""Reference lists used by forms, filters and validation."""

INDIAN_STATES = [
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand", "Karnataka",
    "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur", "Meghalaya", "Mizoram",
    "Nagaland", "Odisha", "Punjab", "Rajasthan", "Sikkim", "Tamil Nadu",
    "Telangana", "Tripura", "Uttar Pradesh", "Uttarakhand", "West Bengal",
    "Andaman and Nicobar Islands", "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu", "Delhi", "Jammu and Kashmir",
    "Ladakh", "Lakshadweep", "Puducherry",
]

CLASSES = [
    "9th", "10th", "11th", "12th",
    "B.Tech", "B.E", "B.Sc", "B.Com", "B.A", "BBA", "BCA",
    "M.Tech", "M.Sc", "M.Com", "M.A", "MBA", "MCA",
    "Diploma", "Other",
]

EXAMS = [
    "JEE Main", "JEE Advanced", "NEET UG", "NEET PG", "BITSAT", "VITEEE",
    "COMEDK", "KCET", "MHT CET", "WBJEE", "CUET", "CAT", "GATE", "CLAT",
    "NDA", "UPSC", "Other",
]

YEARS = list(range(2025, 2011, -1))

BOARDS = ["CBSE", "ICSE", "State Board", "IB", "NIOS", "Other"]

STREAMS = ["Science (PCM)", "Science (PCB)", "Commerce", "Arts", "Engineering", "Medical", "Other"]

CATEGORIES = ["General", "OBC", "SC", "ST", "EWS", "Other"]

GENDERS = ["male", "female", "other", "not_specified"]

ADMISSION_STATUSES = ["new", "contacted", "interested", "not_interested", "enrolled", "rejected"]

FOLLOWUP_STATUSES = ["pending", "completed", "scheduled"]

CALL_STATUSES = ["answered", "not_answered", "busy", "switched_off", "invalid"]

CALL_OUTCOMES = ["contacted", "left_message", "no_answer", "callback_requested"]

STATUS_LABELS = {
    "new": "New",
    "contacted": "Contacted",
    "interested": "Interested",
    "not_interested": "Not Interested",
    "enrolled": "Enrolled",
    "rejected": "Rejected",
    "answered": "Answered",
    "not_answered": "Not Answered",
    "busy": "Busy",
    "switched_off": "Switched Off",
    "invalid": "Invalid Number",
    "left_message": "Left Message",
    "no_answer": "No Answer",
    "callback_requested": "Callback Requested",
}


def label(value: str) -> str:
    return STATUS_LABELS.get(value, (value or "").replace("_", " ").title())
