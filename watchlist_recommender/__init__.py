"""Watch-list Recommender"""
