from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from uploads.dispatcher import ExecutorSincrono, IngestaoDispatcher, get_dispatcher_padrao
from uploads.exceptions import ErroUpload
from uploads.models import Upload, UploadStatus
from uploads.services.intake_service import receber_arquivo, receber_lote


def _expandir_caminhos(caminhos):
    """
    Arquivos entram como estão; diretórios contribuem com seus arquivos
    (não recursivo), em ordem alfabética.
    """
    arquivos = []
    for bruto in caminhos:
        caminho = Path(bruto)
        if caminho.is_dir():
            arquivos.extend(sorted(p for p in caminho.iterdir() if p.is_file()))
        elif caminho.is_file():
            arquivos.append(caminho)
        else:
            raise CommandError(f"Caminho não encontrado: {bruto}")
    return arquivos


class Command(BaseCommand):
    help = (
        "Importa XMLs de CT-e, MDF-e e eventos a partir do disco, pelo mesmo "
        "fluxo de recepção de uploads."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "caminhos",
            nargs="+",
            help="Arquivos XML e/ou diretórios contendo XMLs.",
        )
        parser.add_argument(
            "--lote",
            action="store_true",
            help=(
                "Envia todos os arquivos como um único lote (limite de "
                "UPLOAD_MAX_ARQUIVOS_LOTE; arquivos que não são .xml são ignorados)."
            ),
        )
        parser.add_argument(
            "--sincrono",
            action="store_true",
            help="Processa cada arquivo na thread do comando, sem o pool de workers.",
        )

    def handle(self, *args, **options):
        arquivos = _expandir_caminhos(options["caminhos"])
        if not arquivos:
            raise CommandError("Nenhum arquivo encontrado nos caminhos informados.")

        if options["sincrono"]:
            dispatcher = IngestaoDispatcher(executor=ExecutorSincrono(), fechar_conexoes=False)
        else:
            dispatcher = get_dispatcher_padrao()

        self.stdout.write(
            self.style.NOTICE(f"[importar_xml] {len(arquivos)} arquivo(s) encontrado(s).")
        )

        ids = []
        if options["lote"]:
            try:
                ids = receber_lote(
                    ((p.name, p.read_bytes()) for p in arquivos),
                    dispatcher=dispatcher,
                )
            except ErroUpload as exc:
                raise CommandError(exc.mensagem) from exc
        else:
            for p in arquivos:
                try:
                    ids.append(receber_arquivo(p.name, p.read_bytes(), dispatcher=dispatcher))
                except ErroUpload as exc:
                    self.stderr.write(self.style.WARNING(f"[importar_xml] {p.name}: {exc.mensagem}"))

        # Espera as tarefas agendadas terminarem antes de reportar
        dispatcher.aguardar()

        processados = 0
        falhas = 0
        for upload in Upload.objects.filter(id__in=ids).order_by("data_upload"):
            if upload.status == UploadStatus.PROCESSADO:
                processados += 1
                self.stdout.write(f"  OK    {upload.nome_arquivo} -> {upload.chave_documento}")
            elif upload.status == UploadStatus.FALHOU:
                falhas += 1
                self.stdout.write(
                    self.style.ERROR(f"  ERRO  {upload.nome_arquivo}: {upload.detalhes_erro}")
                )
            else:
                self.stdout.write(self.style.WARNING(f"  PEND  {upload.nome_arquivo}"))

        resumo = f"[importar_xml] Concluído: {processados} processado(s), {falhas} com erro."
        if falhas:
            self.stdout.write(self.style.WARNING(resumo))
        else:
            self.stdout.write(self.style.SUCCESS(resumo))
