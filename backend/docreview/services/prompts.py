"""
prompts.py
==========
Prompt templates for the three model calls of a review:
language identification, framework listing and the full review.
"""

from docreview.services.llm_service import PromptTemplate

NO_DOCUMENTATION_PLACEHOLDER = "No additional documentation available."
DOCUMENTATION_SEPARATOR = "\n\n---\n\n"
FRAMEWORKS_NONE_REPLY = "none"


LANGUAGE_DETECTION_PROMPT = PromptTemplate("""
Identify the programming language of the following code.
Return ONLY the name of the language (e.g., "TypeScript", "Python", "Go").
If you cannot identify it, return "Unknown".

CODE:
```
{code}
```

Result:""")


FRAMEWORK_DETECTION_PROMPT = PromptTemplate("""
Identify the libraries, frameworks, and their versions used in the following {language} code.
Return ONLY a comma-separated list of library names. If no specific libraries are detected, return "None".

CODE:
```{language}
{code}
```

Result:""")


REVIEW_CRITERIA = """Review criteria:
1. **Bugs & Logic Errors**: Identify potential runtime errors, logic flaws, edge cases not handled
2. **Security Vulnerabilities**: Check for SQL injection, XSS, authentication issues, data exposure
3. **Performance Issues**: Look for inefficient algorithms, unnecessary computations, memory leaks
4. **Code Quality**: Assess readability, maintainability, adherence to best practices
5. **Style & Standards**: Check naming conventions, formatting, documentation
6. **API Usage**: Verify correct usage of libraries and frameworks (use the documentation provided)"""


REVIEW_PROMPT = PromptTemplate("""
You are an expert code reviewer with deep knowledge of {language} and software engineering best practices.
You have access to the latest library documentation to ensure your suggestions use current APIs.

Analyze the following code and provide detailed, actionable feedback.

FILE: {filename}
LANGUAGE: {language}

CODE:
```{language}
{code}
```

RELEVANT LIBRARY DOCUMENTATION:
{library_docs}

{review_criteria}

For EACH issue found, provide:
- severity: critical/major/minor/suggestion
- category: bug/security/performance/style/best-practice
- line: exact line number in the code
- message: concise description (1 sentence)
- suggestion: specific code fix or improvement
- explanation: detailed reasoning (2-3 sentences)

If no issues are found, return an empty findings array.

{format_instructions}
""")
