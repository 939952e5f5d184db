from django.apps import AppConfig


class LifeLinkConfig(AppConfig):
    name = 'lifelink'
    verbose_name = 'LifeLink'
