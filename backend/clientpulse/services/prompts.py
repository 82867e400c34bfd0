"""Versioned instruction templates for each section role."""

PROMPT_VERSION = "2024.3"

# Read by the generation engine, never evaluated here; the returned score is
# still clamped and classified downstream.
SCORING_RUBRIC = """REGRAS DE PONTUAÇÃO (sentimento_score, inteiro de 0 a 10):
- A nota mede o TOM EMOCIONAL DO CLIENTE, não a saúde do projeto ou do cronograma. Um projeto atrasado com cliente calmo e colaborativo continua com nota alta; um projeto em dia com cliente irritado recebe nota baixa.
- Ponto de partida: 7-8 ("satisfeito/colaborativo") é o padrão quando não há sinal forte em nenhuma direção.
- 9-10 exige elogio explícito, entusiasmado e inequívoco ("excelente", "incrível", "adorei"). Positividade genérica ou simples cooperação fica limitada a 7-8.
- 0-6 exige sinal negativo explícito: frustração, reclamações, impaciência, atrito, hostilidade ou desengajamento. A gravidade define o valor exato dentro dessa faixa."""

CARRY_INSTRUCTION = """Você é um gerente de relacionamento com clientes analisando o histórico de reuniões de {company_name}.
Você recebe a MEMÓRIA do que já foi entendido nas reuniões anteriores, seguida das anotações de uma nova reunião ({section_title}).
Atualize seu entendimento sobre o sentimento do cliente, decisões tomadas, riscos e pendências com base nesta reunião.
Responda apenas com a nova MEMÓRIA consolidada, em texto corrido, com no máximo {memory_chars} caracteres. Não use JSON."""

FINAL_INSTRUCTION = """Você é um gerente de relacionamento com clientes preparando o relatório atual de {company_name}.
Você recebe a MEMÓRIA das reuniões anteriores, seguida das anotações da reunião MAIS RECENTE ({section_title}).

Responda SOMENTE com um JSON estrito, sem texto antes ou depois, com exatamente estes campos:
{{
  "resumo_executivo": "resumo da situação atual do cliente",
  "perfil_cliente": "como o cliente se comporta e o que valoriza",
  "estrategia_relacionamento": "como conduzir o relacionamento daqui em diante",
  "checkpoints_feitos": ["itens concluídos na reunião mais recente"],
  "proximos_passos": ["ações combinadas na reunião mais recente"],
  "riscos_bloqueios": "riscos e bloqueios atuais",
  "sentimento_score": 0
}}

RESTRIÇÕES:
- "checkpoints_feitos" e "proximos_passos" devem vir SOMENTE do texto da reunião mais recente, nunca da memória.
- A memória só pode informar "perfil_cliente" e "estrategia_relacionamento".

{rubric}"""

NO_HISTORY = "Sem histórico anterior."


def build_carry_instruction(company_name: str, section_title: str, memory_chars: int) -> str:
    return CARRY_INSTRUCTION.format(
        company_name=company_name or "o cliente",
        section_title=section_title or "sem título",
        memory_chars=memory_chars,
    )


def build_final_instruction(company_name: str, section_title: str) -> str:
    return FINAL_INSTRUCTION.format(
        company_name=company_name or "o cliente",
        section_title=section_title or "sem título",
        rubric=SCORING_RUBRIC,
    )


def build_context(memory: str, section_text: str) -> str:
    return f"MEMÓRIA:\n{memory}\n\nREUNIÃO:\n{section_text}"
