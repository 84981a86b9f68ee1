USER_ROLES = ('user', 'admin')
INTERVIEW_STATUSES = ('in_progress', 'completed', 'abandoned')

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

MIN_QUESTIONS = 5
MAX_QUESTIONS = 7

SCORE_FIELDS = (
    'communicationScore',
    'confidenceScore',
    'technicalAccuracyScore',
    'resumeAlignmentScore',
    'personalityFitScore',
    'overallScore',
)

SESSION_KEY_PREFIX = 'interview_session'
# Finished and abandoned sessions stay readable for a day
TERMINAL_SESSION_TTL = 24 * 60 * 60

# Static question bank used when AI generation is unavailable or fails
FALLBACK_QUESTIONS = {
    'Software Engineer': [
        'Tell me about yourself and your experience in software development.',
        'Describe a challenging technical problem you solved and your approach.',
        'How do you ensure code quality and maintainability in your projects?',
        'Walk me through your experience with version control and collaborative development.',
        'Explain your process for debugging complex issues in production.',
        'How do you stay updated with new technologies and best practices?',
        'Describe a time when you had to optimize application performance.',
    ],
    'Data Scientist': [
        'Tell me about your background in data science and analytics.',
        'Describe a complex data analysis project you worked on.',
        'How do you approach feature engineering and model selection?',
        'Explain how you validate and evaluate machine learning models.',
        'Walk me through your experience with data visualization and storytelling.',
        'Describe a time when your analysis led to actionable business insights.',
        'How do you handle missing or inconsistent data in your datasets?',
    ],
    'Product Manager': [
        'Tell me about your experience in product management.',
        'How do you prioritize features and manage product roadmaps?',
        'Describe a time when you launched a successful product or feature.',
        'How do you gather and incorporate user feedback into product decisions?',
        'Explain your process for working with cross-functional teams.',
        'Walk me through how you define and measure product success.',
        'Describe a time when you had to make a difficult trade-off decision.',
    ],
    'UI/UX Designer': [
        'Tell me about your design background and philosophy.',
        'Walk me through your design process from concept to completion.',
        'How do you balance user needs with business requirements?',
        'Describe a project where you significantly improved user experience.',
        'How do you conduct user research and testing?',
        'Explain how you collaborate with developers and product managers.',
        'Describe a time when you had to advocate for design decisions.',
    ],
    'Marketing Manager': [
        'Tell me about your experience in marketing and campaign management.',
        'Describe a successful marketing campaign you led and its results.',
        'How do you measure marketing ROI and track campaign performance?',
        'Walk me through your approach to market research and audience targeting.',
        'How do you stay current with marketing trends and best practices?',
        'Describe a time when you had to adapt your strategy based on data.',
        'How do you manage marketing budgets and allocate resources?',
    ],
    'default': [
        'Tell me about yourself and your professional background.',
        'What are your key strengths and how do they relate to this role?',
        'Describe a challenging situation you faced at work and how you handled it.',
        'How do you prioritize tasks when managing multiple projects?',
        'Tell me about a time when you worked effectively in a team.',
        'What motivates you in your professional career?',
        'Where do you see yourself in the next 3-5 years?',
    ],
}

# Keywords used to suggest target roles from parsed resume skills and titles
ROLE_KEYWORDS = {
    'Software Engineer': [
        'javascript', 'typescript', 'react', 'node', 'java', 'python', 'go', 'c++',
        'c#', 'sql', 'docker', 'kubernetes', 'aws', 'software', 'developer', 'engineer',
        'backend', 'frontend', 'full-stack', 'full stack',
    ],
    'Data Scientist': [
        'machine learning', 'deep learning', 'statistics', 'pandas', 'numpy',
        'scikit-learn', 'tensorflow', 'pytorch', 'data analysis', 'data science',
        'r', 'sql', 'python', 'analytics', 'data scientist',
    ],
    'Product Manager': [
        'product management', 'roadmap', 'agile', 'scrum', 'stakeholder',
        'user stories', 'product manager', 'product owner', 'jira', 'strategy',
    ],
    'UI/UX Designer': [
        'figma', 'sketch', 'adobe xd', 'user research', 'wireframing', 'prototyping',
        'ui', 'ux', 'design systems', 'designer', 'usability',
    ],
    'Marketing Manager': [
        'seo', 'sem', 'content marketing', 'social media', 'google analytics',
        'campaign', 'branding', 'email marketing', 'marketing',
    ],
}

MAX_SUGGESTED_ROLES = 3
