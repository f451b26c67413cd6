from django.urls import path

from marketplace.views_health import healthz, readyz

urlpatterns = [
    path('healthz', healthz, name='healthz-noslash'),
    path('healthz/', healthz, name='healthz'),
    path('readyz', readyz, name='readyz-noslash'),
    path('readyz/', readyz, name='readyz'),
]
