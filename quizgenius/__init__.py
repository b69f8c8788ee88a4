"""
QuizGenius: AI-generated quizzes with score, streak and gauntlet tracking
"""
