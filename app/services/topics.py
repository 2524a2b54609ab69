"""
Built-in topic pool for scheduled quiz generation
"""
import random
from typing import Optional

DEFAULT_TOPICS = (
    "Artificial Intelligence and Machine Learning",
    "Blockchain Technology and Cryptocurrencies",
    "Sustainable Energy and Climate Change",
    "Space Exploration and Astronomy",
    "Cybersecurity and Data Privacy",
    "Quantum Computing",
    "Biotechnology and Genetics",
    "Internet of Things (IoT)",
    "Virtual Reality and Augmented Reality",
    "Renewable Energy Technologies",
    "Neuroscience and Brain Research",
    "Robotics and Automation",
    "Cloud Computing",
    "5G Technology and Communications",
    "Digital Marketing and Social Media",
    "Financial Technology (FinTech)",
    "Health Technology and Telemedicine",
    "Environmental Conservation",
    "Smart Cities and Urban Planning",
    "Data Science and Big Data Analytics",
)


def select_random_topic(rng: Optional[random.Random] = None) -> str:
    """Uniform choice over DEFAULT_TOPICS"""
    return (rng or random).choice(DEFAULT_TOPICS)
