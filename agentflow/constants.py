"""Default values shared across agentflow."""

DEFAULT_IDENTIFIER_FIELD = "email"

DEFAULT_ANALYSIS_SAMPLE_SIZE = 5
DEFAULT_ANALYSIS_TEMPERATURE = 0.7
DEFAULT_ANALYSIS_MAX_TOKENS = 2000
DEFAULT_ANALYSIS_PROMPT = "Analyze this data and provide insights"

DEFAULT_CONTENT_TEMPERATURE = 0.8
DEFAULT_CONTENT_MAX_TOKENS = 1500
DEFAULT_CONTENT_TEMPLATE = "Generate personalized content for {{contact_name}}"
DEFAULT_BRAND_VOICE = "professional"
DEFAULT_CONTENT_DELAY = 0.2

DEFAULT_EMAIL_PROVIDER = "resend"
DEFAULT_FROM_EMAIL = "noreply@yourcompany.com"
DEFAULT_SEND_DELAY = 1.0

DEFAULT_MODEL = "openai:gpt-4o"
DEFAULT_WAIT_DURATION_MS = 1000
DEFAULT_MAX_STEPS_PER_RUN = 1000

DEFAULT_PRIORITY_SCORE = 50
DEFAULT_PRIORITY_REASON = "standard"
DEFAULT_SEGMENT = "general"
HIGH_PRIORITY_THRESHOLD = 80

TRUE_PATH = "truePath"
FALSE_PATH = "falsePath"
