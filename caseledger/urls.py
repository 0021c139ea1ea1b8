"""
Case inventory URLs.

    path('case-inventory/', include('caseledger.urls'))
"""

from django.urls import path

from caseledger import views

app_name = 'caseledger'

urlpatterns = [
    path('', views.item_list, name='item-list'),
    path('<str:item_code>', views.item_detail, name='item-detail'),
    path('<str:item_code>/use', views.use_cases, name='use'),
    path('<str:item_code>/rotation-report', views.rotation_report, name='rotation-report'),
    path('<str:item_code>/physical-count', views.physical_count, name='physical-count'),
]
