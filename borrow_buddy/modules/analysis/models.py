# Tool photo analysis through an OpenAI-compatible chat completions gateway.
# Nothing is persisted here; results are written back onto tools rows.

from borrow_buddy.modules.tools.models import ToolCondition, PowerSource

ANALYZE_FUNCTION_NAME = "analyze_tool"

# Labels the model picks from; mapped onto tool_categories by name
ANALYSIS_CATEGORIES = [
    "Power Tools",
    "Hand Tools",
    "Garden & Outdoor",
    "Ladders & Scaffolding",
    "Measuring & Layout",
    "Safety Equipment",
    "Automotive",
    "Cleaning",
    "Other",
]

ANALYSIS_PROMPT = (
    "Analyze this tool image and extract detailed information. Identify the tool name, "
    "brand (if visible), provide a detailed description, determine the best matching category, "
    "estimate the condition based on visual appearance, and identify the power source type "
    "if visible from the image, labels, or visible features."
)

ANALYZE_TOOL_FUNCTION = {
    "type": "function",
    "function": {
        "name": ANALYZE_FUNCTION_NAME,
        "description": "Extract structured information about a tool from an image",
        "parameters": {
            "type": "object",
            "properties": {
                "tool_name": {
                    "type": "string",
                    "description": 'The specific name of the tool (e.g., "Cordless Drill", "Hammer", "Lawn Mower")'
                },
                "description": {
                    "type": "string",
                    "description": "A detailed description of the tool including its features, specifications, and potential uses"
                },
                "category": {
                    "type": "string",
                    "enum": ANALYSIS_CATEGORIES,
                    "description": "The category that best matches this tool"
                },
                "condition": {
                    "type": "string",
                    "enum": [c.value for c in ToolCondition],
                    "description": "Visual condition assessment: new (unused), excellent (like new), good (minor wear), fair (visible wear), worn (significant wear)"
                },
                "confidence": {
                    "type": "number",
                    "description": "Confidence score from 0-100 for the identification"
                },
                "brand": {
                    "type": "string",
                    "description": 'The brand or manufacturer name if visible on the tool (e.g., "DeWalt", "Milwaukee", "Bosch")'
                },
                "power_source": {
                    "type": "string",
                    "enum": [p.value for p in PowerSource],
                    "description": "The power source type if identifiable: battery, corded, gas, manual, pneumatic or hybrid"
                }
            },
            "required": ["tool_name", "description", "category", "condition", "confidence"]
        }
    }
}

NOT_DETECTED = "Not detected"
