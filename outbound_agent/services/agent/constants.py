"""Fixed lines spoken or stored by the agent."""

# Spoken when speech recognition returned nothing
REPROMPT_LINE = "I didn't quite catch that. Could you say that again?"

# Stored and spoken when the model fails or returns nothing usable
FALLBACK_LINE = (
    "Sorry, I missed part of that. Could you tell me a little more?"
)

# Spoken when the speech webhook hits an unexpected error
APOLOGY_LINE = "I'm sorry, I ran into a problem on my end. Could you repeat that?"

SUMMARY_UNAVAILABLE = "Call completed. Summary unavailable."

SUMMARY_INSTRUCTIONS = (
    "You are a call QA assistant. Summarize the conversation in three concise "
    "bullet points and propose up to three next steps."
)
