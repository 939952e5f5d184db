from django.urls import include, path

from lifelink.views import HealthView, RootView

urlpatterns = [
    path('', RootView.as_view(), name='root'),
    path('health', HealthView.as_view(), name='health'),
    path('api/', include('lifelink.urls')),
]
