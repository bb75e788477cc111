"""
Fixed lines spoken to callers.

Every caller-facing sentence lives here so wording changes never touch
the state machine. Business-specific values come from configuration.
"""

from receptionist.config import settings

_biz = settings.business

GREETING = f"Thanks for calling {_biz.name}. How can I help you today?"
HOW_CAN_I_HELP = "How can I help you today?"

# --- Intent routing ---
INTENT_CLARIFICATION = (
    "I'd be happy to help. Are you looking to schedule an appointment or leave a message?"
)
INQUIRY = (
    f"No one is available right now. Our office hours are {_biz.office_hours}. "
    "Would you like to leave a message now, or call back during business hours?"
)
OFFICE_HOURS = (
    f"Our office hours are {_biz.office_hours}. "
    "Would you like to leave a message for a callback, or schedule a consultation?"
)

# --- Calendar ---
CALENDAR_CHECK = "Let me look at our calendar."
OFFER_SLOT = "I found the earliest available slot on {slot}. Is that suitable for you?"
REOFFER_SLOT = "Sorry, I didn't quite catch that. The earliest available slot is {slot}. Does that work for you?"
ASK_PREFERRED_TIME = "No problem. What day and time would you prefer?"
NO_SLOTS = (
    "I don't have any available slots right now. Would you like to leave a message "
    "so someone can call you back during business hours?"
)
TOO_MANY_REJECTIONS = (
    "I'm sorry I couldn't find a time that works for you. Would you like to leave a "
    "message so someone can call you back to schedule?"
)
FALLBACK_REPEAT = "Would you like to leave a message so someone can call you back?"

# --- Appointment details ---
APPOINTMENT_FIRST_NAME = "Great. Let me get a few details to confirm your appointment. What is your first name?"
APPOINTMENT_RESTART = "Sorry about that. Let's start again. What is your first name?"
PRIOR_CLIENT = f"Have you worked with {_biz.short_name} before?"
REFERRAL = "How did you hear about us?"
CALL_REASON = "What is the main reason for your call today?"
CALL_REASON_RETURNING = "Welcome back! What is the main reason for your call today?"

# --- Message details ---
MESSAGE_FIRST_NAME = "I'd be happy to take a message. What is your first name?"
MESSAGE_RESTART = "Sorry about that. Let's start again. What is your first name?"
MESSAGE_CONTENT = "What is the reason for your call?"

# --- Shared field prompts ---
FIRST_NAME = "What is your first name?"
FIRST_NAME_RETRY = "I just need your first name. What is your first name?"
LAST_NAME = "And your last name?"
LAST_NAME_RETRY = "I just need your last name. Please say or spell it."
PHONE = "What is the best phone number to reach you?"
PHONE_RETRY = "I need your 10-digit phone number. Please say each digit slowly."
EMAIL = "What is your email address?"
EMAIL_RETRY = (
    "I need your email address. Please spell it out slowly, letter by letter, "
    "including 'at' and 'dot'."
)
EMAIL_READ_BACK = "Let me read that back. {spelled}. Is that correct?"
EMAIL_RESTART = "Sorry about that. Please spell your email address again, letter by letter."
REFERRAL_RETRY = "Could you tell me how you heard about us? For example, a friend or an online search."
CALL_REASON_RETRY = "Could you briefly tell me what you'd like to discuss?"
MESSAGE_CONTENT_RETRY = "Could you briefly tell me what your message is about?"
CONFIRM_AGAIN = "Sorry, I need a yes or no. Is all of that correct?"

# --- Silence ---
DIDNT_CATCH = "I didn't catch that. Could you please repeat?"
STILL_THERE = "Are you still there?"

# --- Endings ---
APPOINTMENT_COMPLETE = (
    "Your appointment is confirmed for {slot}. A confirmation will be sent to your email. "
    f"Thank you for calling {_biz.short_name}. Goodbye."
)
MESSAGE_COMPLETE = (
    "Thank you. Your message has been received. Someone will call you back during "
    f"business hours. Thank you for calling {_biz.short_name}. Goodbye."
)
CALLBACK_END = f"No problem. Thank you for calling {_biz.short_name}. We're here to help. Goodbye."
DECLINED = f"Thank you for calling {_biz.short_name}. We're here to help. Goodbye."
NO_RESPONSE = (
    "I haven't been able to hear you, so I'll end the call now. "
    f"Please call {_biz.short_name} back any time. Goodbye."
)
TECHNICAL_ISSUE = "Sorry, there was a technical issue. Please try again later. Goodbye."
