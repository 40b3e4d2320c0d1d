# uploads/serializers.py

from rest_framework import serializers

from uploads.models import Upload


class UploadSerializer(serializers.ModelSerializer):
    """
    Visão do registro de acompanhamento exposta a quem enviou o arquivo.

    chave_documento só vem preenchida em PROCESSED; detalhes_erro só em FAILED.
    """

    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Upload
        fields = [
            "id",
            "nome_arquivo",
            "data_upload",
            "status",
            "status_display",
            "tipo_documento",
            "chave_documento",
            "detalhes_erro",
            "processado_em",
        ]
        read_only_fields = fields
