"""
QuizApp: a Discord trivia quiz bot backed by the Trivia API.
"""
